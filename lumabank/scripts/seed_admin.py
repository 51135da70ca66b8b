"""Create database tables and the default admin account"""

import logging

from lumabank.config import settings
from lumabank.infrastructure.database.models import Base
from lumabank.infrastructure.database.session import SessionLocal, engine
from lumabank.infrastructure.observability.logging import setup_logging
from lumabank.services.accounts import seed_default_admin

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin = seed_default_admin(db)
    finally:
        db.close()

    if admin is None:
        logger.info("Default admin already exists", extra={"admin_email": settings.default_admin_email})
    else:
        logger.warning("Default admin created; change its password after first login")


if __name__ == "__main__":
    main()
