"""Contracts for the scan engine and the scouts that feed it.

The scheduler only depends on the ArbitrageEngine protocol; any object
providing these methods can be handed to CronScheduler. Scouts are the
platform-specific sources an engine scans (eBay, Amazon, retail sites).
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Protocol, runtime_checkable

from arbi_cli.engine.models import EngineStats, Opportunity, ScanParameters


@runtime_checkable
class ArbitrageEngine(Protocol):
    """Operations the scheduler calls on the engine."""

    async def run_scan(self, params: ScanParameters) -> List[Opportunity]:
        ...

    def get_opportunities(
        self,
        min_score: Optional[float] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Opportunity]:
        ...

    def cleanup_expired(self) -> int:
        ...

    def reset_daily_counters(self) -> None:
        ...

    def get_stats(self) -> EngineStats:
        ...


class Scout(ABC):
    """Abstract base class for opportunity scouts.

    Scouts must implement:
    - name property: Unique platform identifier
    - scan(): Return scored opportunities found on the platform

    Example:
        class RetailScout(Scout):
            @property
            def name(self) -> str:
                return "retail"

            async def scan(self, params: ScanParameters) -> List[Opportunity]:
                # Query the retailer feed and score each product
                ...
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Platform identifier recorded as ``Opportunity.source``."""
        ...

    @abstractmethod
    async def scan(self, params: ScanParameters) -> List[Opportunity]:
        """Find opportunities on this platform.

        Args:
            params: Current scan thresholds

        Returns:
            Scored opportunities; filtering by ``params.min_score`` is
            done by the engine.
        """
        ...
