"""
Seed demo data into the configured database.
Requires DEBUG=true (SEED_DEMO is refused otherwise).
Run: python -m scripts.seed_demo_data
"""
from procurehub.core.config import settings
from procurehub.core.logging import setup_logging, get_logger
from procurehub.db.seed import DEMO_PASSWORD, DEMO_USERS, seed_demo_data
from procurehub.db.session import get_db_context

setup_logging()
logger = get_logger("seed_demo_data")


def main():
    if not settings.DEBUG:
        logger.error("Refusing to seed demo data with DEBUG=false")
        raise SystemExit(1)

    with get_db_context() as db:
        seed_demo_data(db)

    for email, _, _, role in DEMO_USERS:
        logger.info(f"Demo login: {email} ({role.value})")
    logger.info(f"Demo password for all users: {DEMO_PASSWORD}")


if __name__ == "__main__":
    main()
