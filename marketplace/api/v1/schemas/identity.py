"""
Schemas for the session identity supplied by the identity provider.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.user import UserRole


class SessionIdentity(BaseModel):
    """
    Identity decoded from a session token.

    Claim names follow the identity provider's token (camelCase); both the
    ``id`` and ``sub`` claims are accepted as the user ID.
    """

    id: str = Field(..., min_length=1, description="User ID")
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    first_login: bool = Field(False, alias="firstLogin")
    has_profile: bool = Field(False, alias="hasProfile")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_claims(cls, claims: dict) -> "SessionIdentity":
        data = dict(claims)
        if not data.get("id") and data.get("sub"):
            data["id"] = data["sub"]
        if data.get("role") not in {role.value for role in UserRole}:
            data["role"] = None
        return cls.model_validate(data)
