import logging


class CredentialFilter(logging.Filter):
    """Mask share credentials passed to structured logs."""

    BLOCKED_KEYS = {"password", "username", "target_descriptor"}

    def filter(self, record: logging.LogRecord) -> bool:
        for key in self.BLOCKED_KEYS:
            if hasattr(record, key):
                setattr(record, key, "[REDACTED]")
        return True


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # Handler filters also see records propagated from module loggers.
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CredentialFilter) for f in handler.filters):
            handler.addFilter(CredentialFilter())
