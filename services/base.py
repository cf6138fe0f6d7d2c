import logging
from datetime import datetime, timezone

from exceptions import NotFoundError, ServiceError

logger = logging.getLogger(__name__)


async def execute(query, action: str):
    """Run a query builder, turning SDK failures into ``ServiceError``."""
    try:
        return await query.execute()
    except ServiceError:
        raise
    except Exception as exc:
        logger.exception("Error while trying to %s", action)
        raise ServiceError(f"Failed to {action}", cause=exc)


def first_or_none(res):
    return res.data[0] if res and res.data else None


def first_or_404(res, what: str):
    row = first_or_none(res)
    if row is None:
        raise NotFoundError(f"{what} not found")
    return row


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
