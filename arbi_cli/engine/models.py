"""Data types shared between the scan engine and the scheduler."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional


# Wire names used by the management API for each scan parameter
SCAN_PARAMETER_ALIASES: Dict[str, str] = {
    "min_score": "minScore",
    "min_roi": "minROI",
    "min_profit": "minProfit",
    "max_price": "maxPrice",
    "categories": "categories",
    "scan_interval": "scanInterval",
    "auto_buy_enabled": "autoBuyEnabled",
    "auto_buy_score": "autoBuyScore",
    "daily_budget": "dailyBudget",
}

OPPORTUNITY_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScanParameters:
    """Thresholds passed unchanged into every engine scan.

    Attributes:
        min_score: Minimum opportunity score to keep (0-100)
        min_roi: Minimum ROI percentage
        min_profit: Minimum net profit in dollars
        max_price: Maximum supplier price in dollars
        categories: Marketplace category IDs to monitor
        scan_interval: Minutes between scans (informational)
        auto_buy_enabled: Whether the engine may purchase on its own
        auto_buy_score: Score threshold for auto-buy
        daily_budget: Maximum daily auto-buy spend in dollars
    """

    min_score: float = 70
    min_roi: float = 20
    min_profit: float = 10
    max_price: float = 200
    categories: List[str] = field(default_factory=list)
    scan_interval: float = 15
    auto_buy_enabled: bool = False
    auto_buy_score: float = 90
    daily_budget: float = 1000

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase wire representation."""
        return {
            alias: getattr(self, name)
            for name, alias in SCAN_PARAMETER_ALIASES.items()
        }


@dataclass
class Product:
    """A supplier-side product an opportunity points at."""

    id: str
    title: str
    price: float
    currency: str = "USD"
    item_web_url: str = ""
    image_url: str = ""
    condition: str = "new"


@dataclass
class Opportunity:
    """A detected price gap between a supplier and a marketplace.

    Status moves pending -> alerted | purchased, and any status can be
    dropped by cleanup once ``expires_at`` has passed.
    """

    id: str
    product: Product
    net_profit: float
    roi: float
    total_cost: float
    score: float
    tier: str = "medium"
    source: str = ""
    status: str = "pending"
    found_at: datetime = field(default_factory=_utcnow)
    expires_at: datetime = field(default_factory=lambda: _utcnow() + OPPORTUNITY_TTL)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at < (now or _utcnow())


@dataclass
class EngineStats:
    """Summary statistics reported by the engine."""

    total_opportunities: int = 0
    alerted_count: int = 0
    purchased_count: int = 0
    average_score: float = 0.0
    total_potential_profit: float = 0.0
    daily_spent: float = 0.0
    last_scan: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_opportunities": self.total_opportunities,
            "alerted_count": self.alerted_count,
            "purchased_count": self.purchased_count,
            "average_score": self.average_score,
            "total_potential_profit": self.total_potential_profit,
            "daily_spent": self.daily_spent,
            "last_scan": self.last_scan.isoformat() if self.last_scan else None,
        }
