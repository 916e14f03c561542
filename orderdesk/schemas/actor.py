from enum import Enum
from pydantic import BaseModel


class ActorRole(str, Enum):
    ADMIN = "ADMIN"
    SALES_REP = "SALES_REP"


class Actor(BaseModel):
    """The user on whose behalf an operation runs, as resolved by the caller."""
    id: int
    role: ActorRole = ActorRole.SALES_REP
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def label(self) -> str:
        return self.name or f"{self.role.value.lower()}:{self.id}"


SYSTEM_ACTOR = Actor(id=0, role=ActorRole.ADMIN, name="system")
