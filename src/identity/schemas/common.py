"""Response envelope shared by all endpoints."""

from pydantic import BaseModel


class ApiResponse(BaseModel):
    success: bool = True
    message: str = "OK"
