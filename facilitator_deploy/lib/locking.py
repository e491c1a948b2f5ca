from __future__ import annotations

import contextlib
import fcntl
import logging
import os
from pathlib import Path
from typing import Iterator

from ..errors import PreconditionError

logger = logging.getLogger(__name__)

LOCK_NAME = ".fctl.lock"


@contextlib.contextmanager
def deploy_lock(deploy_dir: str) -> Iterator[Path]:
    """Hold an exclusive advisory lock on the deploy dir for the whole block.

    Installer runs and mutating fctl commands share the same lock file, so a
    second operator gets a PreconditionError instead of racing on the marker
    store or the config snapshot.
    """

    p = Path(deploy_dir) / LOCK_NAME
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(p), os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        raise PreconditionError(f"Cannot lock {p}: {e}") from e
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise PreconditionError(
                f"Another setup/fctl run holds {p}; wait for it to finish"
            ) from e
        logger.debug("Acquired lock %s", p)
        try:
            yield p
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
