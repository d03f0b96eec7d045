"""Identity schemas."""

from uuid import UUID

from pydantic import BaseModel

from backoffice.models.user import RoleType


class CurrentUser(BaseModel):
    """Authenticated identity threaded through every workflow call."""
    id: UUID
    name: str
    role: RoleType

    @property
    def is_admin(self) -> bool:
        return self.role == RoleType.ADMIN
