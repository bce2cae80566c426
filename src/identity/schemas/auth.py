"""Authentication, session and TOTP schemas."""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from src.identity.schemas.common import ApiResponse
from src.identity.schemas.identity import IdentityRead
from src.identity.schemas.passwords import validate_password_strength

TOTP_CODE_PATTERN = r"^[0-9]{6}$"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=1024)
    totp_code: str | None = Field(default=None, pattern=TOTP_CODE_PATTERN)


class TotpLoginRequest(BaseModel):
    """Follow-up request completing a login that needs a second factor."""

    challenge_token: str = Field(min_length=32, max_length=128)
    code: str = Field(pattern=TOTP_CODE_PATTERN)


class LoginResponse(ApiResponse):
    session_established: bool = False
    requires_totp: bool = False
    challenge_token: str | None = None
    csrf_token: str | None = None
    identity: IdentityRead | None = None


class CurrentSessionResponse(ApiResponse):
    identity: IdentityRead


class TotpSetupResponse(ApiResponse):
    """A fresh secret to enroll. Nothing is stored until it is enabled."""

    secret: str
    provisioning_uri: str


class TotpEnableRequest(BaseModel):
    # 80 or 160 bit keys; other lengths are not whole base32 blocks
    secret: str = Field(pattern=r"^(?:[A-Z2-7]{16}|[A-Z2-7]{32})$")
    code: str = Field(pattern=TOTP_CODE_PATTERN)


class TotpDisableRequest(BaseModel):
    code: str = Field(pattern=TOTP_CODE_PATTERN)


class RegisterRequest(BaseModel):
    """Registration through an invitation token."""

    token: str = Field(min_length=32, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8, max_length=100)
    password_confirm: str

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return validate_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.password_confirm:
            raise ValueError("Passwords do not match")
        return self


class RegisterResponse(ApiResponse):
    identity: IdentityRead
