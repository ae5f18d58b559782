"""The six recurring job bodies and their fixed schedules.

Each body is a thin orchestration step: it receives a JobContext built
for the current fire, delegates to the engine or the backend API and
returns a small JSON-serializable summary. Bodies that talk to the
backend treat an unreachable backend as a soft condition and report it
through ``reachable: False`` instead of raising.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from arbi_cli.engine.base import ArbitrageEngine
from arbi_cli.engine.models import Opportunity, ScanParameters
from arbi_cli.exceptions import BackendUnavailableError
from arbi_cli.scheduler.models import JobKind
from arbi_cli.services.backend import BackendClient

logger = logging.getLogger(__name__)

CRON_SCHEDULES: Dict[JobKind, str] = {
    JobKind.OPPORTUNITY_SCAN: "*/15 * * * *",
    JobKind.AUTONOMOUS_LISTING: "0 * * * *",
    JobKind.ORDER_FULFILLMENT: "*/30 * * * *",
    JobKind.CLEANUP: "0 */6 * * *",
    JobKind.DAILY_RESET: "0 0 * * *",
    JobKind.PAYOUT_PROCESSING: "0 */4 * * *",
}

JOB_DESCRIPTIONS: Dict[JobKind, str] = {
    JobKind.OPPORTUNITY_SCAN: "Scan for profitable arbitrage opportunities",
    JobKind.AUTONOMOUS_LISTING: "Automatically list products on marketplace",
    JobKind.ORDER_FULFILLMENT: "Process pending orders and purchase from suppliers",
    JobKind.CLEANUP: "Clean up expired listings and opportunities",
    JobKind.DAILY_RESET: "Reset daily counters and statistics",
    JobKind.PAYOUT_PROCESSING: "Process profit payouts to bank accounts",
}

# Friendly schedule text reported by GET /status
SCHEDULE_LABELS: Dict[str, str] = {
    "opportunityScan": "Every 15 minutes",
    "autonomousListing": "Every hour",
    "orderFulfillment": "Every 30 minutes",
    "cleanup": "Every 6 hours",
    "dailyReset": "Daily at midnight",
    "payoutProcessing": "Every 4 hours",
}

LISTING_MIN_SCORE = 75
LISTING_STATUS = "alerted"
LISTING_BATCH_SIZE = 10
LISTING_MARKUP_PERCENTAGE = 30

PENDING_ORDER_STATUS = "payment_received"


@dataclass(frozen=True)
class JobContext:
    """Collaborators handed to a job body for a single fire."""

    engine: ArbitrageEngine
    backend: BackendClient
    scan_parameters: ScanParameters


JobBody = Callable[[JobContext], Awaitable[Dict[str, Any]]]


async def opportunity_scan(ctx: JobContext) -> Dict[str, Any]:
    """Run one engine scan with the current scan parameters."""
    logger.info("Starting opportunity scan...")
    opportunities = await ctx.engine.run_scan(ctx.scan_parameters)
    logger.info(f"Found {len(opportunities)} opportunities")
    return {"found": len(opportunities)}


def build_listing_payload(opportunity: Opportunity) -> Dict[str, Any]:
    """Build the marketplace listing request for an opportunity."""
    product = opportunity.product
    return {
        "opportunityId": opportunity.id,
        "productTitle": product.title,
        "productDescription": f"{product.title} - Great deal! Score: {opportunity.score}",
        "productImageUrls": [product.image_url] if product.image_url else [],
        "supplierPrice": product.price,
        "supplierUrl": product.item_web_url,
        "supplierPlatform": opportunity.source,
        "markupPercentage": LISTING_MARKUP_PERCENTAGE,
    }


async def autonomous_listing(ctx: JobContext) -> Dict[str, Any]:
    """List the best alerted opportunities on the marketplace.

    ``listed`` counts opportunities attempted, not listings created; a
    failed listing is logged and the batch moves on.
    """
    logger.info("Starting autonomous listing...")
    opportunities = ctx.engine.get_opportunities(
        min_score=LISTING_MIN_SCORE,
        status=LISTING_STATUS,
        limit=LISTING_BATCH_SIZE,
    )

    succeeded = 0
    failed = 0
    for opportunity in opportunities:
        try:
            await ctx.backend.create_listing(build_listing_payload(opportunity))
        except Exception as e:
            failed += 1
            logger.error(f"Failed to list opportunity {opportunity.id}: {e}")
        else:
            succeeded += 1
            logger.info(f"Listed: {opportunity.product.title}")

    return {"listed": len(opportunities), "succeeded": succeeded, "failed": failed}


def _payload_field(data: Any, key: str, kind: type) -> Any:
    """Return ``data[key]`` when it has the expected type.

    A missing key gives None quietly; a value of the wrong shape is
    logged and also gives None.
    """
    if not isinstance(data, Mapping):
        logger.warning(f"Ignoring malformed backend response: {type(data).__name__}")
        return None
    value = data.get(key)
    if value is None or isinstance(value, kind):
        return value
    logger.warning(f"Ignoring malformed backend field '{key}': {type(value).__name__}")
    return None


async def order_fulfillment(ctx: JobContext) -> Dict[str, Any]:
    """Report orders that have been paid and await supplier purchase."""
    logger.info("Processing order fulfillment...")
    try:
        data = await ctx.backend.get_orders()
    except BackendUnavailableError as e:
        logger.warning(f"Order fulfillment skipped, backend unavailable: {e}")
        return {"pending": 0, "reachable": False, "error": str(e)}

    pending = [
        order for order in _payload_field(data, "orders", list) or []
        if isinstance(order, Mapping) and order.get("status") == PENDING_ORDER_STATUS
    ]
    logger.info(f"Found {len(pending)} orders to fulfill")
    for order in pending:
        logger.info(f"Order {order.get('orderId')} awaiting supplier purchase")

    return {"pending": len(pending), "reachable": True}


def _parse_timestamp(value: Any) -> Optional[datetime]:
    # Numbers are epoch milliseconds
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def count_expired_listings(listings: Any, now: Optional[datetime] = None) -> int:
    """Count listings whose ``expiresAt`` lies before ``now``."""
    now = now or datetime.now(timezone.utc)
    expired = 0
    for listing in listings or []:
        if not isinstance(listing, Mapping):
            continue
        expires_at = _parse_timestamp(listing.get("expiresAt"))
        if expires_at is not None and expires_at < now:
            expired += 1
    return expired


async def cleanup(ctx: JobContext) -> Dict[str, Any]:
    """Drop expired engine opportunities and count expired listings."""
    logger.info("Running cleanup...")
    expired_opportunities = ctx.engine.cleanup_expired()

    try:
        data = await ctx.backend.get_active_listings()
    except BackendUnavailableError as e:
        logger.warning(f"Listing cleanup skipped, backend unavailable: {e}")
        return {
            "expired_opportunities": expired_opportunities,
            "expired_listings": 0,
            "reachable": False,
            "error": str(e),
        }

    expired_listings = count_expired_listings(_payload_field(data, "listings", list))
    logger.info(f"Found {expired_listings} expired listings")
    return {
        "expired_opportunities": expired_opportunities,
        "expired_listings": expired_listings,
        "reachable": True,
    }


async def daily_reset(ctx: JobContext) -> Dict[str, Any]:
    """Reset the engine's daily counters and log the day's summary."""
    logger.info("Running daily reset...")
    ctx.engine.reset_daily_counters()

    stats = ctx.engine.get_stats()
    logger.info(
        "Daily summary: "
        f"opportunities={stats.total_opportunities} "
        f"alerted={stats.alerted_count} "
        f"purchased={stats.purchased_count} "
        f"daily_spent=${stats.daily_spent:.2f} "
        f"potential_profit=${stats.total_potential_profit:.2f}"
    )
    return stats.to_dict()


async def payout_processing(ctx: JobContext) -> Dict[str, Any]:
    """Log payout totals reported by the backend."""
    logger.info("Processing payouts...")
    try:
        data = await ctx.backend.get_payout_history()
    except BackendUnavailableError as e:
        logger.warning(f"Payout processing skipped, backend unavailable: {e}")
        return {"processed": 0, "reachable": False, "error": str(e)}

    stats: Optional[Mapping[str, Any]] = _payload_field(data, "stats", Mapping)
    if not stats:
        logger.info("No payout stats reported")
        return {"processed": 0, "reachable": True}

    logger.info(
        "Payout stats: "
        f"total_trades={stats.get('totalTrades', 0)} "
        f"gross_profit={stats.get('totalGrossProfit', 0)} "
        f"user_payouts={stats.get('totalUserPayouts', 0)}"
    )
    return {**stats, "reachable": True}


JOB_BODIES: Dict[JobKind, JobBody] = {
    JobKind.OPPORTUNITY_SCAN: opportunity_scan,
    JobKind.AUTONOMOUS_LISTING: autonomous_listing,
    JobKind.ORDER_FULFILLMENT: order_fulfillment,
    JobKind.CLEANUP: cleanup,
    JobKind.DAILY_RESET: daily_reset,
    JobKind.PAYOUT_PROCESSING: payout_processing,
}
