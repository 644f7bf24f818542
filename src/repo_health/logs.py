"""Logging setup.

The dashboard owns the terminal, so log records go to a file instead of
stderr.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(log_path: Path, level: str = "WARNING") -> Optional[Path]:
    """Send repo_health log records to `log_path`.

    Returns the path in use, or None if the log directory cannot be created.
    """
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        logging.getLogger(__name__).addHandler(logging.NullHandler())
        return None

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("repo_health")
    for existing in list(root.handlers):
        if isinstance(existing, logging.FileHandler):
            root.removeHandler(existing)
            existing.close()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    return log_path
