"""
CLI entrypoint for the expired auth data sweep. Run from cron, e.g.:

  python -m ngo_portal.cleanup

Or hourly: 0 * * * * cd /path/to/portal && .venv/bin/python -m ngo_portal.cleanup
"""

import asyncio
import logging
import sys

from ngo_portal.auth.service import cleanup_expired_auth_data
from ngo_portal.config import get_settings
from ngo_portal.database import get_engine, get_session_factory, init_db
from ngo_portal.logging_config import configure_logging


logger = logging.getLogger(__name__)


def main() -> int:
    """Delete expired sessions and stale password reset tokens."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    db = get_session_factory(engine)()
    try:
        report = asyncio.run(cleanup_expired_auth_data(db))
        logger.info(
            "Cleanup completed: sessions_deleted=%s reset_tokens_deleted=%s",
            report.sessions_deleted, report.reset_tokens_deleted,
        )
        return 0
    except Exception as e:
        logger.exception("Cleanup job failed: %s", e)
        return 1
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
