"""Post-mutation refresh: refetch page 1 of the affected collection.

Always a full replace of the screen's list; there is no optimistic patching
and no cached delta to reconcile.
"""
import structlog
from pydantic import ValidationError as SchemaError

from admin_console.config import settings
from admin_console.errors import AdminConsoleError, user_message
from admin_console.schemas.common import PageMeta
from admin_console.services.disputes import DisputeService
from admin_console.services.promotions import PromotionService
from admin_console.services.referrals import ReferralService
from admin_console.state import DisputeScreen, PromotionScreen, ReferralScreen

logger = structlog.get_logger()


async def load_disputes(
    screen: DisputeScreen,
    service: DisputeService,
    page: int = 1,
    limit: int | None = None,
    status: str | None = None,
) -> None:
    limit = limit or screen.page_size
    screen.loading = True
    screen.error = None
    try:
        response = await service.list_disputes(page=page, limit=limit, status=status)
        screen.disputes = response.data
        screen.meta = response.meta or PageMeta(total=len(response.data), page=page, limit=limit)
    except (AdminConsoleError, SchemaError) as exc:
        logger.warning("disputes_load_failed", page=page, limit=limit, error=str(exc))
        screen.disputes = []
        screen.meta = None
        screen.error = user_message(exc, "Failed to load disputes")
    finally:
        screen.loading = False


async def refresh_disputes(screen: DisputeScreen, service: DisputeService) -> None:
    """Page 1 at whatever page size the admin was looking at (50 by default)."""
    await load_disputes(screen, service, page=1, limit=screen.page_size)


async def refresh_referrals(screen: ReferralScreen, service: ReferralService) -> None:
    """Referral list and aggregate stats, both replaced."""
    limit = settings.REFERRAL_PAGE_SIZE
    screen.loading = True
    screen.error = None
    try:
        response = await service.list_referrals()
        screen.referrals = response.items
        screen.meta = PageMeta(total=response.total, page=1, limit=limit)
    except (AdminConsoleError, SchemaError) as exc:
        logger.warning("referrals_load_failed", error=str(exc))
        screen.referrals = []
        screen.meta = None
        screen.error = user_message(exc, "Failed to load referrals")
    finally:
        screen.loading = False

    screen.stats_error = None
    try:
        screen.stats = await service.get_stats()
    except (AdminConsoleError, SchemaError) as exc:
        logger.warning("referral_stats_load_failed", error=str(exc))
        screen.stats = None
        screen.stats_error = user_message(exc, "Failed to load stats")


async def refresh_promotions(screen: PromotionScreen, service: PromotionService) -> None:
    page_size = settings.PROMOTION_PAGE_SIZE
    screen.loading = True
    screen.error = None
    try:
        response = await service.list_promotions(page=1, page_size=page_size)
        screen.promotions = response.items
        screen.meta = PageMeta(
            total=response.total, page=response.page, limit=response.page_size, total_pages=response.pages
        )
    except (AdminConsoleError, SchemaError) as exc:
        logger.warning("promotions_load_failed", error=str(exc))
        screen.error = user_message(exc, "Failed to load promotions")
    finally:
        screen.loading = False

    screen.stats_error = None
    try:
        screen.stats = await service.get_stats()
    except (AdminConsoleError, SchemaError) as exc:
        logger.warning("promotion_stats_load_failed", error=str(exc))
        screen.stats = None
        screen.stats_error = user_message(exc, "Failed to load stats")
