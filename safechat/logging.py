import logging

VIOLATIONS_LOGGER = "safechat.violations"


def configure_logging(level: int = logging.INFO, violations_level: int = logging.INFO) -> logging.Logger:
    """Configure root logging once and return the package logger.

    httpx logs every Bot API request at INFO, which drowns out violation
    records on busy chats, so it is capped at WARNING.
    """
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger(VIOLATIONS_LOGGER).setLevel(violations_level)
    return logging.getLogger("safechat")
