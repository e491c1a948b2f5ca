from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = "/var/log/facilitator-deploy.log"


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send deploy and fctl logs to one file plus the operator's terminal.

    ``facilitator-setup`` and ``fctl`` share the log so a reload can be read
    next to the install that preceded it. An operator running ``fctl status``
    without sudo cannot open the /var/log file; their run logs to
    ./facilitator-deploy.log and the returned path says which one was used.
    A second call in the same process only changes the level.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    if getattr(logger, "_facilitator_configured", False):
        return getattr(logger, "_facilitator_log_path", log_path)

    chosen_path = log_path
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        fallback = str(Path.cwd() / "facilitator-deploy.log")
        file_handler = logging.FileHandler(fallback)
        chosen_path = fallback
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_facilitator_configured", True)
    setattr(logger, "_facilitator_log_path", chosen_path)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
