"""Logging configuration for the docstore service and CLI."""

from logging.config import dictConfig


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging to stderr.

    Args:
        verbose: Log at DEBUG, including per-request access lines; otherwise
            only warnings and errors are shown
    """
    level = "DEBUG" if verbose else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,  # keep uvicorn's loggers
            "formatters": {
                "plain": {
                    "format": "%(asctime)s %(levelname)-5s [pid:%(process)d] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "level": level,
                    "formatter": "plain",
                }
            },
            "root": {
                "level": level,
                "handlers": ["stream"],
            },
            "loggers": {
                "uvicorn": {"level": "INFO" if verbose else "WARNING", "handlers": [], "propagate": True},
                "uvicorn.error": {"level": "INFO" if verbose else "WARNING", "handlers": [], "propagate": True},
                # Requests are logged by the app's own access middleware
                "uvicorn.access": {"level": "WARNING", "handlers": [], "propagate": True},
            },
        }
    )
