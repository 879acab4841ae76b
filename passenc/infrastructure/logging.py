import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(log_dir: Optional[Path] = None, debug: bool = False) -> logging.Logger:
    """Configures the passenc logger hierarchy and returns its root logger.

    With a log_dir, records go to <log_dir>/passenc.log; otherwise to stderr.
    """
    logger = logging.getLogger("passenc")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_dir / "passenc.log")
    else:
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
