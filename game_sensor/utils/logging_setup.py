import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Root logger with console output and an optional log file."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT, handlers=handlers, force=True)

    # PIL logs every image open at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)
