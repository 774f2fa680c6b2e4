"""User domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class UserRole(StrEnum):
    """User role within the property portfolio."""

    OWNER = "owner"
    MANAGER = "manager"
    TENANT = "tenant"


class UserAccess(BaseModel):
    """Caller identity and the properties they can see."""

    user_id: str = Field(..., description="Unique user ID (the user's email address)")
    name: str = Field(default="", description="Display name of the user")
    role: UserRole = Field(default=UserRole.TENANT)
    property_ids: list[str] = Field(default_factory=list, description="Property IDs the user may access")

    @property
    def display_name(self) -> str:
        """Name to show in activity feeds."""
        return self.name or "You"
