from typing import Optional

from pydantic import BaseModel, Field


class LoginResult(BaseModel):
    success: bool
    requires_2fa: bool = False
    message: str
    username: Optional[str] = Field(
        None, description="Echoed back when a verification code is still needed."
    )


class AuthStatus(BaseModel):
    configured: bool
    username: str = ""
