from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Literal, Dict, Any, Optional

ReportStatus = Literal["pending", "approved", "rejected"]
REPORT_STATUSES = ("pending", "approved", "rejected")
TERMINAL_REPORT_STATUSES = ("approved", "rejected")

# Suggestions for the report form; any non-empty type is accepted.
WASTE_TYPES = ("PET bottles", "HDPE containers", "Plastic bags", "Packaging film", "Mixed plastics")


@dataclass(frozen=True)
class WasteReport:
    """DTO for a single waste collection report."""
    id: str
    user_id: str
    waste_type: str
    weight: float
    status: str = "pending"
    location: Optional[str] = None
    image_url: Optional[str] = None
    agent_id: Optional[str] = None
    points_awarded: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    owner_first_name: Optional[str] = None
    owner_last_name: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def owner_name(self) -> str:
        return f"{self.owner_first_name or ''} {self.owner_last_name or ''}".strip()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Reward:
    """Catalog entry redeemable for points."""
    id: str
    name: str
    points_required: int
    description: Optional[str] = None
    category: Optional[str] = None
    available_quantity: int = 0
    image_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def in_stock(self) -> bool:
        return self.available_quantity > 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Redemption:
    id: str
    user_id: str
    reward_id: str
    points_spent: int
    redeemed_at: str
    reward_name: Optional[str] = None


@dataclass(frozen=True)
class SystemSetting:
    key: str
    value: str
    updated_at: Optional[str] = None


def round_half_up(value) -> int:
    """Round to the nearest integer, halves away from zero (5.5 -> 6)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
