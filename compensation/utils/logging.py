"""
Logging setup.

Configures loguru for worker and scheduler processes.
Sets up log rotation and retention policies.
"""

from loguru import logger

from compensation.config.settings import settings


def setup_logging(log_file: str | None = None) -> None:
    """
    Configure logger with file rotation.

    Args:
        log_file: Path of the log file (defaults to settings.log_file)
    """
    logger.add(
        log_file or settings.log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(
        f"Compensation engine logging configured "
        f"(environment={settings.environment}, level={settings.log_level})"
    )
