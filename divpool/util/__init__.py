from .structured_logging import configure_logging, log_event

__all__ = ["configure_logging", "log_event"]
