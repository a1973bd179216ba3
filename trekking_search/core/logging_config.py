import logging
import os
import sys

from trekking_search.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = None, log_file: str = None) -> None:
    """Configure the root logger with console output and a log file under LOG_DIR."""
    level = (level or settings.LOG_LEVEL).upper()
    log_file = log_file or settings.APP_LOG_FILENAME

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    handlers = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(os.path.join(settings.LOG_DIR, log_file), encoding="utf-8"),
    ]

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # Keep third-party chatter out of our logs
    for noisy in ("httpx", "httpcore", "google_genai", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
