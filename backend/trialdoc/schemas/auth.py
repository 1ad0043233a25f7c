"""
TrialDoc Backend - Authentication Schemas
===========================================

Request and response bodies for /auth. Credentials are optional at the schema
level so that a missing or empty field produces the service's own 400
message rather than a framework error.
"""

from typing import Optional

from pydantic import BaseModel, Field

from trialdoc.schemas.common import CamelModel


class CredentialsRequest(BaseModel):
    username: Optional[str] = Field(default=None, description="Unique username")
    password: Optional[str] = Field(default=None, description="Plaintext password (never stored)")

    def __repr__(self) -> str:
        return f"CredentialsRequest(username={self.username!r}, password='***')"


class RegisterRequest(CredentialsRequest):
    pass


class LoginRequest(CredentialsRequest):
    pass


class UserPublic(CamelModel):
    id: str
    username: str


class RegisterResponse(CamelModel):
    message: str = "User registered successfully"
    user_id: str = Field(description="Identifier of the created user")


class TokenResponse(CamelModel):
    token: str = Field(description="Signed bearer token, valid for 24 hours")
    user: UserPublic


class VerifyResponse(CamelModel):
    valid: bool = True
    user: UserPublic
