"""
Transient identity values passed between the providers and the HTTP layer.

None of these are persisted; they live for a single request.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenSet(BaseModel):
    """Tokens issued by the user pool, passed through unmodified."""

    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(..., alias="idToken")
    access_token: str = Field(..., alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    expires_in: Optional[int] = Field(None, alias="expiresIn")

    @classmethod
    def from_authentication_result(cls, result: Dict[str, Any]) -> "TokenSet":
        return cls(
            id_token=result["IdToken"],
            access_token=result["AccessToken"],
            refresh_token=result.get("RefreshToken"),
            expires_in=result.get("ExpiresIn"),
        )

    def to_payload(self, *, include_refresh_token: bool = True) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, exclude_none=True)
        if not include_refresh_token:
            payload.pop("refreshToken", None)
        return payload


class GoogleTokens(BaseModel):
    """Token response from Google's authorization-code exchange."""

    access_token: str
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None


class ExternalIdentity(BaseModel):
    """Profile fields read from Google's userinfo endpoint."""

    email: str
    subject_id: str = Field(..., alias="sub")
    name: Optional[str] = None
    picture: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "googleId": self.subject_id,
            "name": self.name,
            "picture": self.picture,
        }


__all__ = ["ExternalIdentity", "GoogleTokens", "TokenSet"]
