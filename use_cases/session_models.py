"""Session DTOs shared across application layers."""

from dataclasses import dataclass
from typing import Literal, Optional

Role = Literal["user", "agent", "admin"]
ROLES = ("user", "agent", "admin")
SELF_SERVICE_ROLES = ("user", "agent")


@dataclass(frozen=True)
class Identity:
    id: str
    email: str


@dataclass(frozen=True)
class Profile:
    id: str
    role: str
    is_approved: bool = False
    first_name: str = ""
    last_name: str = ""
    company_name: Optional[str] = None
    business_license: Optional[str] = None
    points: int = 0
    avatar_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        if self.role == "agent" and self.company_name:
            return self.company_name
        return name or "Anonymous"

    @property
    def initials(self) -> str:
        initials = (self.first_name[:1] + self.last_name[:1]).upper()
        return initials or "U"


def is_admin(profile: Profile) -> bool:
    return profile.role == "admin"


def is_agent(profile: Profile) -> bool:
    return profile.role == "agent"


def is_approved(profile: Profile) -> bool:
    # Approval is only tracked for agents; every other role is approved implicitly.
    if profile.role != "agent":
        return True
    return bool(profile.is_approved)
