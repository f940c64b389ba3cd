from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Marker on handlers we install, so reconfiguring replaces only ours.
_HANDLER_TAG = "_k3s_bootstrap_handler"


def configure_logging(
    log_path: str,
    level: int = logging.INFO,
    also_console: bool = True,
    force: bool = False,
) -> str:
    """Configure root logging to a persistent file plus the console.

    Every record carries a timestamp and a severity. If log_path is not
    writable (e.g. /var/log as non-root) a file in the working directory is
    used instead and reported.

    Calling it again is a no-op unless force=True, which swaps our handlers
    for new ones (other handlers are left alone).

    Returns the actual file path being used.
    """

    root = logging.getLogger()
    root.setLevel(level)

    ours = [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]
    if ours and not force:
        return getattr(root, "_k3s_bootstrap_log_path", log_path)
    for h in ours:
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = []

    file_handler: Optional[logging.Handler] = None
    chosen_path = log_path
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = str(Path.cwd() / Path(log_path).name)
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        setattr(h, _HANDLER_TAG, True)
        root.addHandler(h)

    setattr(root, "_k3s_bootstrap_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path
