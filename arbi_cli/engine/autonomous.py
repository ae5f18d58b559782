"""In-memory autonomous scan engine.

The AutonomousEngine fans a scan out to every registered scout, keeps
the opportunities that meet the configured score, and decides per
opportunity whether to alert or (when auto-buy is enabled) mark it as
purchased within the daily budget.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from arbi_cli.engine.base import Scout
from arbi_cli.engine.models import EngineStats, Opportunity, ScanParameters

logger = logging.getLogger(__name__)

ALERT_SCORE = 70
HIGH_PRIORITY_SCORE = 80


class AutonomousEngine:
    """Multi-platform opportunity engine with in-memory state.

    Example:
        engine = AutonomousEngine()
        engine.register_scout(MyScout())

        found = await engine.run_scan(ScanParameters(min_score=75))
        top = engine.get_opportunities(min_score=80, limit=5)
    """

    def __init__(self, scouts: Optional[List[Scout]] = None) -> None:
        self._scouts: Dict[str, Scout] = {}
        self._opportunities: Dict[str, Opportunity] = {}
        self._daily_spent = 0.0
        self._last_scan: Optional[datetime] = None

        for scout in scouts or []:
            self.register_scout(scout)

    @property
    def platforms(self) -> List[str]:
        """Names of registered scouts."""
        return list(self._scouts)

    @property
    def daily_spent(self) -> float:
        return self._daily_spent

    def register_scout(self, scout: Scout) -> None:
        """Register a platform scout, replacing one with the same name."""
        self._scouts[scout.name] = scout
        logger.info(f"Registered scout: {scout.name}")

    async def run_scan(self, params: ScanParameters) -> List[Opportunity]:
        """Scan all platforms concurrently and store qualifying opportunities.

        A scout that raises contributes nothing; the other scouts'
        results are still kept.

        Args:
            params: Scan thresholds

        Returns:
            Opportunities found in this scan with score >= params.min_score
        """
        if not self._scouts:
            logger.warning("No scouts registered, scan will find nothing")

        names = list(self._scouts)
        results = await asyncio.gather(
            *[self._scouts[name].scan(params) for name in names],
            return_exceptions=True,
        )

        found: List[Opportunity] = []
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error(f"Scout {name} scan failed: {result}")
                continue

            logger.info(f"{name}: {len(result)} candidate opportunities")
            for opportunity in result:
                if opportunity.score < params.min_score:
                    continue
                opportunity.source = opportunity.source or name
                self._opportunities[opportunity.id] = opportunity
                self._handle_opportunity(opportunity, params)
                found.append(opportunity)

        self._last_scan = datetime.now(timezone.utc)
        logger.info(f"Scan complete: {len(found)} opportunities across {len(names)} platforms")
        return found

    def _handle_opportunity(self, opportunity: Opportunity, params: ScanParameters) -> None:
        """Alert on or purchase an opportunity depending on its score."""
        if params.auto_buy_enabled and opportunity.score >= params.auto_buy_score:
            if self._daily_spent + opportunity.total_cost <= params.daily_budget:
                opportunity.status = "purchased"
                self._daily_spent += opportunity.total_cost
                logger.info(
                    f"Auto-buy: {opportunity.product.title[:40]} "
                    f"for ${opportunity.total_cost:.2f}"
                )
                return
            logger.warning("Daily budget exceeded, skipping auto-buy")
            opportunity.status = "alerted"
        elif opportunity.score >= ALERT_SCORE:
            opportunity.status = "alerted"

        if opportunity.status == "alerted":
            priority = "high" if opportunity.score >= HIGH_PRIORITY_SCORE else "medium"
            logger.info(
                f"[{priority.upper()}] {opportunity.product.title[:40]} "
                f"score={opportunity.score} profit=${opportunity.net_profit:.2f}"
            )

    def get_opportunities(
        self,
        min_score: Optional[float] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Opportunity]:
        """Return stored opportunities, best score first."""
        opportunities = list(self._opportunities.values())

        if min_score is not None:
            opportunities = [o for o in opportunities if o.score >= min_score]
        if status is not None:
            opportunities = [o for o in opportunities if o.status == status]

        opportunities.sort(key=lambda o: o.score, reverse=True)

        if limit is not None:
            opportunities = opportunities[:limit]
        return opportunities

    def cleanup_expired(self) -> int:
        """Drop expired opportunities.

        Returns:
            Number of opportunities removed
        """
        now = datetime.now(timezone.utc)
        expired = [oid for oid, o in self._opportunities.items() if o.is_expired(now)]
        for oid in expired:
            del self._opportunities[oid]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired opportunities")
        return len(expired)

    def reset_daily_counters(self) -> None:
        self._daily_spent = 0.0
        logger.info("Daily counters reset")

    def get_stats(self) -> EngineStats:
        opportunities = list(self._opportunities.values())
        total = len(opportunities)
        return EngineStats(
            total_opportunities=total,
            alerted_count=sum(1 for o in opportunities if o.status == "alerted"),
            purchased_count=sum(1 for o in opportunities if o.status == "purchased"),
            average_score=(sum(o.score for o in opportunities) / total) if total else 0.0,
            total_potential_profit=sum(o.net_profit for o in opportunities),
            daily_spent=self._daily_spent,
            last_scan=self._last_scan,
        )
