from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator


class TokenResponse(BaseModel):
    """Successful response from the identity token endpoint."""

    model_config = {"extra": "ignore"}

    access_token: str = Field(..., description="Bearer token for the device API.")
    refresh_token: str = Field(..., description="Token used for the refresh grant.")
    expires_in: int = Field(..., gt=0, description="Access token lifetime in seconds.")
    refresh_expires_in: int = Field(
        ..., gt=0, description="Refresh token lifetime in seconds."
    )


class TokenSession(BaseModel):
    """Access/refresh token pair with expiries.

    A session is either empty or has all four fields set. It is replaced as a
    whole, never updated field by field.
    """

    model_config = {"frozen": True}

    access_token: Optional[str] = None
    access_token_expiration: Optional[datetime] = None
    refresh_token: Optional[str] = None
    refresh_token_expiration: Optional[datetime] = None

    @classmethod
    def from_token_response(cls, response: TokenResponse, now: datetime) -> "TokenSession":
        return cls(
            access_token=response.access_token,
            access_token_expiration=now + timedelta(seconds=response.expires_in),
            refresh_token=response.refresh_token,
            refresh_token_expiration=now + timedelta(seconds=response.refresh_expires_in),
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.access_token is None
            and self.access_token_expiration is None
            and self.refresh_token is None
            and self.refresh_token_expiration is None
        )

    def access_token_expired(self, now: datetime) -> bool:
        return self.access_token_expiration is None or self.access_token_expiration <= now

    def refresh_token_expired(self, now: datetime) -> bool:
        return self.refresh_token_expiration is None or self.refresh_token_expiration <= now


class PersistedTokens(BaseModel):
    """On-disk record of a session and the account that owns it."""

    model_config = {"populate_by_name": True}

    username: str
    refresh_token: str = Field(
        ...,
        validation_alias=AliasChoices("refresh_token", "refreshToken"),
        serialization_alias="refreshToken",
    )
    refresh_token_expiration: datetime = Field(
        ...,
        validation_alias=AliasChoices("refresh_token_expiration", "refreshTokenExpiration"),
        serialization_alias="refreshTokenExpiration",
    )
    access_token: str = Field(
        ...,
        validation_alias=AliasChoices("access_token", "accessToken"),
        serialization_alias="accessToken",
    )
    access_token_expiration: datetime = Field(
        ...,
        validation_alias=AliasChoices("access_token_expiration", "accessTokenExpiration"),
        serialization_alias="accessTokenExpiration",
    )

    @field_validator("refresh_token_expiration", "access_token_expiration")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # records without an offset were written in UTC
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    @field_serializer("refresh_token_expiration", "access_token_expiration")
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    @classmethod
    def from_session(cls, username: str, session: TokenSession) -> "PersistedTokens":
        return cls(
            username=username,
            refresh_token=session.refresh_token,
            refresh_token_expiration=session.refresh_token_expiration,
            access_token=session.access_token,
            access_token_expiration=session.access_token_expiration,
        )

    def to_session(self) -> TokenSession:
        return TokenSession(
            access_token=self.access_token,
            access_token_expiration=self.access_token_expiration,
            refresh_token=self.refresh_token,
            refresh_token_expiration=self.refresh_token_expiration,
        )

    def to_record(self) -> dict:
        """Serialize with the camelCase keys used on disk."""
        return self.model_dump(mode="json", by_alias=True)
