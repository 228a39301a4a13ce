"""
Tests for the housekeeping jobs and demo seeding.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

from procurehub.db.models import (
    Auction, Bom, Product, RfxEvent, User, UserSession, Vendor,
)
from procurehub.db.seed import seed_demo_data
from procurehub.workers import jobs

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def add_auction(db, name, start, end, status="scheduled"):
    auction = Auction(name=name, start_time=start, end_time=end, status=status)
    db.add(auction)
    db.commit()
    return auction


# ============= SESSIONS =============

def test_purge_expired_sessions(db_session, buyer):
    db_session.add_all([
        UserSession(sid="old", sess={"user_id": buyer.id}, expire=NOW - timedelta(minutes=1)),
        UserSession(sid="live", sess={"user_id": buyer.id}, expire=NOW + timedelta(hours=1)),
    ])
    db_session.commit()

    assert jobs.purge_expired_sessions(db_session, now=NOW) == 1
    db_session.commit()

    assert [s.sid for s in db_session.query(UserSession).all()] == ["live"]


def test_purge_job_commits_its_own_session(db_session, buyer):
    db_session.add(UserSession(sid="old", sess={"user_id": buyer.id},
                               expire=datetime.now(timezone.utc) - timedelta(days=1)))
    db_session.commit()

    assert jobs.purge_expired_sessions_job() == 1
    assert db_session.query(UserSession).count() == 0


# ============= AUCTIONS =============

def test_sync_auction_status(db_session):
    add_auction(db_session, "Due to start", NOW - timedelta(minutes=5), NOW + timedelta(hours=1))
    add_auction(db_session, "Future", NOW + timedelta(hours=1), NOW + timedelta(hours=2))
    add_auction(db_session, "Over", NOW - timedelta(hours=2), NOW - timedelta(hours=1), status="live")
    add_auction(db_session, "Skipped entirely", NOW - timedelta(hours=3), NOW - timedelta(hours=2))
    add_auction(db_session, "Called off", NOW - timedelta(hours=3), NOW - timedelta(hours=2), status="cancelled")

    result = jobs.sync_auction_status(db_session, now=NOW)
    db_session.commit()

    assert result == {"started": 1, "completed": 2}
    statuses = {a.name: a.status for a in db_session.query(Auction).all()}
    assert statuses == {
        "Due to start": "live",
        "Future": "scheduled",
        "Over": "completed",
        "Skipped entirely": "completed",
        "Called off": "cancelled",
    }


# ============= RFX =============

def test_close_overdue_rfx(db_session):
    db_session.add_all([
        RfxEvent(title="Overdue", type="rfq", status="published", due_date=NOW - timedelta(days=1)),
        RfxEvent(title="Running", type="rfq", status="active", due_date=NOW + timedelta(days=1)),
        RfxEvent(title="Draft", type="rfq", status="draft", due_date=NOW - timedelta(days=1)),
        RfxEvent(title="Open-ended", type="rfi", status="published"),
    ])
    db_session.commit()

    assert jobs.close_overdue_rfx(db_session, now=NOW) == 1
    db_session.commit()

    statuses = {e.title: e.status for e in db_session.query(RfxEvent).all()}
    assert statuses == {"Overdue": "closed", "Running": "active", "Draft": "draft", "Open-ended": "published"}


# ============= SCHEDULING =============

def test_setup_scheduled_jobs_registers_housekeeping():
    scheduler = MagicMock()
    with patch.object(jobs, "get_scheduler", return_value=scheduler):
        jobs.setup_scheduled_jobs()

    scheduled = {c.kwargs["func"]: c.kwargs for c in scheduler.schedule.call_args_list}
    assert scheduled[jobs.sync_auction_status_job]["interval"] == 60
    assert scheduled[jobs.sync_auction_status_job]["queue_name"] == "high"
    assert scheduled[jobs.purge_expired_sessions_job]["queue_name"] == "low"
    assert jobs.close_overdue_rfx_job in scheduled


def test_enqueue_helpers_use_named_queues():
    queue = MagicMock()
    with patch.object(jobs, "get_queue", return_value=queue) as get_queue:
        jobs.enqueue_auction_sync()
        jobs.enqueue_session_purge()

    assert [c.args[0] for c in get_queue.call_args_list] == ["high", "low"]
    queue.enqueue.assert_any_call(jobs.sync_auction_status_job)
    queue.enqueue.assert_any_call(jobs.purge_expired_sessions_job)


# ============= SEED =============

def test_seed_demo_data_is_idempotent(db_session):
    seed_demo_data(db_session)
    db_session.commit()
    seed_demo_data(db_session)
    db_session.commit()

    assert db_session.query(User).count() == 3
    assert db_session.query(Vendor).count() == 2
    assert db_session.query(Product).count() == 4

    bom = db_session.query(Bom).one()
    assert bom.name == "Office Workstation Setup"
    assert sum(i.total_price for i in bom.items) == Decimal("2500.00")
