"""
Database session management with SQLAlchemy.
"""
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
from contextlib import contextmanager

from procurehub.core.config import settings
from procurehub.core.logging import get_logger

logger = get_logger(__name__)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


is_sqlite = settings.DATABASE_URL.startswith("sqlite")

if is_sqlite:
    # Local development and tests
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database session."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Initialize database connection and run startup tasks.

    Schema is managed by Alembic migrations, NOT create_all().
    Run `alembic upgrade head` before first startup.

    Startup order:
    1. Run preflight check (validates DB connectivity)
    2. Verify schema exists (tables were created by Alembic)
    3. Bootstrap admin if ADMIN_BOOTSTRAP_* env vars set and no users exist
    4. Seed demo data ONLY if SEED_DEMO=true
    """
    from sqlalchemy import inspect, text

    from procurehub.db.preflight import run_db_preflight
    run_db_preflight()

    # Import models to register them (but don't create tables)
    from procurehub.db import models  # noqa

    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()
    required_tables = ['organizations', 'users', 'sessions']

    missing = [t for t in required_tables if t not in existing_tables]
    if missing:
        logger.warning(f"Database schema missing required tables: {missing}. Run `alembic upgrade head`.")
        if settings.DEBUG:
            logger.warning("DEBUG=true: Auto-creating tables (NOT for production!)")
            Base.metadata.create_all(bind=engine)
        else:
            logger.error("Production mode: waiting for migrations to be run")
            return
    else:
        logger.info(f"Database schema verified: {len(existing_tables)} tables found")

    if 'alembic_version' in existing_tables:
        with engine.connect() as conn:
            version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
            logger.info(f"Alembic migration version: {version}")
    else:
        logger.warning("alembic_version table not found - migrations may not have been run")

    bootstrap_admin()

    if settings.SEED_DEMO:
        logger.info("SEED_DEMO=true: Seeding demo data")
        from procurehub.db.seed import seed_demo_data
        with get_db_context() as db:
            seed_demo_data(db)


def bootstrap_admin():
    """
    Bootstrap initial admin user from environment variables.

    Only runs if ADMIN_BOOTSTRAP_EMAIL and ADMIN_BOOTSTRAP_PASSWORD are set
    and no users exist yet. Idempotent.
    """
    from procurehub.db.models import Organization, User, UserRole
    from procurehub.core.security import get_password_hash

    email = settings.ADMIN_BOOTSTRAP_EMAIL
    password = settings.ADMIN_BOOTSTRAP_PASSWORD

    if not email or not password:
        logger.info("Admin bootstrap: ADMIN_BOOTSTRAP_EMAIL/PASSWORD not set. Skipping.")
        return

    if len(password) < 10:
        logger.warning("ADMIN_BOOTSTRAP_PASSWORD must be at least 10 characters. Skipping bootstrap.")
        return

    with get_db_context() as db:
        existing_user = db.query(User).first()
        if existing_user:
            logger.info("Admin bootstrap: users already exist. Skipping bootstrap.")
            return

        org = db.query(Organization).first()
        if not org:
            org = Organization(name="ProcureHub")
            db.add(org)
            db.flush()

        admin = User(
            email=email,
            hashed_password=get_password_hash(password),
            first_name="Administrator",
            role=UserRole.BUYER_ADMIN.value,
            organization_id=org.id,
            is_active=True,
        )
        db.add(admin)
        logger.info(f"Bootstrap admin created: {email}")
