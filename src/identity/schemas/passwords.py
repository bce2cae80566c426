"""Password strength validation with zxcvbn."""

from zxcvbn import zxcvbn

# Minimum zxcvbn score (0-4 scale): 3 = "safely unguessable"
MIN_PASSWORD_SCORE = 3


def validate_password_strength(v: str) -> str:
    """Validate password strength using zxcvbn entropy estimation."""
    result = zxcvbn(v)
    score = result["score"]  # 0-4 scale

    if score < MIN_PASSWORD_SCORE:
        feedback = result.get("feedback", {})
        warning = feedback.get("warning", "")
        suggestions = feedback.get("suggestions", [])

        if warning:
            raise ValueError(f"Weak password: {warning}")
        elif suggestions:
            raise ValueError(f"Weak password: {suggestions[0]}")
        else:
            raise ValueError(
                "Password is too weak. Use a longer password with a mix of characters."
            )

    return v
