"""Authentication schemas for access tokens and the current principal."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class JWTClaims(BaseModel):
    """Claims carried by a FreightFlow access token."""

    sub: str = Field(..., description="Subject (user ID)")
    tenant_id: UUID = Field(..., description="Tenant the user belongs to")
    email: Optional[str] = Field(None, description="User email")
    role: Optional[str] = Field(None, description="Primary role")
    roles: List[str] = Field(default_factory=list, description="Additional roles")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    iss: str = Field(..., description="Token issuer")
    aud: Optional[str] = Field(None, description="Audience")
    name: Optional[str] = Field(None, description="Display name")


class CurrentUser(BaseModel):
    """Current authenticated user information."""

    id: str = Field(..., description="User ID")
    tenant_id: UUID = Field(..., description="Tenant ID used to scope every query")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(default="USER", description="Primary role")
    roles: List[str] = Field(default_factory=list, description="All roles held")
    full_name: Optional[str] = Field(None, description="User's full name")

    @classmethod
    def from_claims(cls, claims: JWTClaims) -> "CurrentUser":
        roles = [r.upper() for r in claims.roles]
        primary = (claims.role or (roles[0] if roles else "USER")).upper()
        if primary not in roles:
            roles.insert(0, primary)
        return cls(
            id=claims.sub,
            tenant_id=claims.tenant_id,
            email=claims.email,
            role=primary,
            roles=roles,
            full_name=claims.name,
        )

    def has_any_role(self, *candidates: str) -> bool:
        wanted = {c.upper() for c in candidates}
        return bool(wanted.intersection(self.roles))


class UserProfile(BaseModel):
    """User profile information for API responses."""

    id: str = Field(..., description="User ID")
    tenant_id: UUID = Field(..., description="Tenant ID")
    email: Optional[str] = Field(None, description="User email")
    full_name: Optional[str] = Field(None, description="User's full name")
    role: str = Field(..., description="Primary role")
    roles: List[str] = Field(default_factory=list, description="All roles held")


__all__ = ["JWTClaims", "CurrentUser", "UserProfile"]
