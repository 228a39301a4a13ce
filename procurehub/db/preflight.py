"""
Database preflight check to ensure connectivity before starting the application.
"""
import sys
import time
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from procurehub.core.config import settings
from procurehub.core.logging import get_logger

logger = get_logger("db_preflight")


def run_db_preflight(retries: int = 5, delay: int = 2):
    """
    Attempts to connect to the database and runs a simple query.
    If connection fails, logs troubleshooting steps and exits.
    """
    db_url = settings.DATABASE_URL
    if not db_url:
        logger.error("CRITICAL: DATABASE_URL is not configured!")
        sys.exit(1)

    # Never log credentials
    safe_url = db_url.split("@")[-1] if "@" in db_url else "configured URL"
    logger.info(f"Running DB preflight check against: {safe_url}")

    connect_args = {} if db_url.startswith("sqlite") else {"connect_timeout": 5}
    engine = create_engine(db_url, connect_args=connect_args)

    try:
        for attempt in range(1, retries + 1):
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info("Database connection successful.")
                return True
            except OperationalError as e:
                err_msg = str(e)

                if "password authentication failed" in err_msg.lower():
                    logger.error("FATAL: DATABASE AUTHENTICATION FAILED")
                    logger.error(f"User: {settings.POSTGRES_USER} Target DB: {settings.POSTGRES_DB}")
                    logger.error("CAUSE: .env / compose credentials do not match the existing database volume.")
                    logger.error("FIX (Development): run 'docker compose down -v' to reset data.")
                    sys.exit(1)

                if attempt < retries:
                    logger.warning(f"Attempt {attempt}/{retries} failed: {err_msg}. Retrying in {delay}s...")
                    time.sleep(delay)
                else:
                    logger.error(f"CRITICAL: Could not connect to database after {retries} attempts.")
                    logger.error(f"Error: {err_msg}")
                    sys.exit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    run_db_preflight()
