"""
Background job definitions.

Each housekeeping task is a plain function over a Session (used directly in
tests) wrapped by an RQ job that opens its own session.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from redis import Redis
from rq import Queue
from rq_scheduler import Scheduler
from sqlalchemy.orm import Session

from procurehub.core.config import settings
from procurehub.core.logging import get_logger
from procurehub.core.rbac import as_utc

logger = get_logger(__name__)


def get_queue(name: str = "default") -> Queue:
    """Get RQ queue."""
    redis_conn = Redis.from_url(settings.REDIS_URL)
    return Queue(name, connection=redis_conn)


def get_scheduler() -> Scheduler:
    """Get RQ scheduler."""
    redis_conn = Redis.from_url(settings.REDIS_URL)
    return Scheduler(connection=redis_conn)


# ============= TASKS =============

def purge_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """Delete login sessions past their expiry. Returns the number removed."""
    from procurehub.db.models import UserSession

    now = now or datetime.now(timezone.utc)
    expired = [s for s in db.query(UserSession).all() if as_utc(s.expire) <= now]
    for session_row in expired:
        db.delete(session_row)
    return len(expired)


def sync_auction_status(db: Session, now: Optional[datetime] = None) -> dict:
    """scheduled -> live once started, live -> completed once ended.

    Only the status is tracked; no winner is computed.
    """
    from procurehub.db.models import Auction, AuctionStatus

    now = now or datetime.now(timezone.utc)
    started = completed = 0

    auctions = db.query(Auction).filter(
        Auction.status.in_([AuctionStatus.SCHEDULED.value, AuctionStatus.LIVE.value])
    ).all()
    for auction in auctions:
        if as_utc(auction.end_time) <= now:
            auction.status = AuctionStatus.COMPLETED.value
            completed += 1
        elif auction.status == AuctionStatus.SCHEDULED.value and as_utc(auction.start_time) <= now:
            auction.status = AuctionStatus.LIVE.value
            started += 1

    return {"started": started, "completed": completed}


def close_overdue_rfx(db: Session, now: Optional[datetime] = None) -> int:
    """Close published/active RFx events whose due date has passed."""
    from procurehub.db.models import RfxEvent, RfxStatus
    from procurehub.services.lifecycle import RFX_OPEN_STATUSES

    now = now or datetime.now(timezone.utc)
    closed = 0
    events = db.query(RfxEvent).filter(
        RfxEvent.status.in_(list(RFX_OPEN_STATUSES)),
        RfxEvent.due_date.isnot(None),
    ).all()
    for event in events:
        if as_utc(event.due_date) <= now:
            event.status = RfxStatus.CLOSED.value
            closed += 1
    return closed


# ============= JOB FUNCTIONS =============

def purge_expired_sessions_job():
    """Background job to drop expired sessions."""
    from procurehub.db.session import get_db_context

    with get_db_context() as db:
        removed = purge_expired_sessions(db)
    logger.info(f"Purged {removed} expired sessions")
    return removed


def sync_auction_status_job():
    """Background job to move auctions along their schedule."""
    from procurehub.db.session import get_db_context

    with get_db_context() as db:
        result = sync_auction_status(db)
    logger.info(f"Auction status sync: {result['started']} started, {result['completed']} completed")
    return result


def close_overdue_rfx_job():
    """Background job to close RFx events past their due date."""
    from procurehub.db.session import get_db_context

    with get_db_context() as db:
        closed = close_overdue_rfx(db)
    logger.info(f"Closed {closed} overdue RFx events")
    return closed


# ============= QUEUE HELPERS =============

def enqueue_session_purge():
    """Queue session purge."""
    queue = get_queue("low")
    return queue.enqueue(purge_expired_sessions_job)


def enqueue_auction_sync():
    """Queue auction status sync."""
    queue = get_queue("high")
    return queue.enqueue(sync_auction_status_job)


def setup_scheduled_jobs():
    """Setup scheduled jobs."""
    scheduler = get_scheduler()
    now = datetime.now(timezone.utc)

    # Auctions open and close on the minute
    scheduler.schedule(
        scheduled_time=now,
        func=sync_auction_status_job,
        interval=60,
        repeat=None,
        queue_name="high",
    )

    scheduler.schedule(
        scheduled_time=now + timedelta(minutes=5),
        func=close_overdue_rfx_job,
        interval=900,
        repeat=None,
    )

    # Hourly session cleanup
    scheduler.schedule(
        scheduled_time=now + timedelta(minutes=10),
        func=purge_expired_sessions_job,
        interval=3600,
        repeat=None,
        queue_name="low",
    )

    logger.info("Scheduled jobs configured")
