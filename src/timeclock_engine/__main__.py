"""Serve the timeclock engine API: ``python -m timeclock_engine``."""

import logging

import uvicorn

from timeclock_engine.config import configure_logging, get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Build the app through its factory and serve it with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "Serving timeclock engine %s on %s:%d (weekly query concurrency %d)",
        settings.engine_version,
        settings.host,
        settings.port,
        settings.weekly_query_concurrency,
    )
    uvicorn.run(
        "timeclock_engine.api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
