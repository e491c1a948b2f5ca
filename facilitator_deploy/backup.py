from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import PreconditionError
from .lib.assets import copy_file

logger = logging.getLogger(__name__)

STAMP_FORMAT = "%Y%m%d-%H%M%S"


def _unique_dir(backups_dir: Path, stamp: str) -> Path:
    d = backups_dir / stamp
    n = 1
    while d.exists():
        d = backups_dir / f"{stamp}-{n}"
        n += 1
    return d


def create_backup(
    deploy_dir: str,
    names: Iterable[str],
    backups_dir: str,
    *,
    now: Optional[datetime] = None,
) -> Path:
    """Copy the tracked config files that exist into backups/<timestamp>/."""

    stamp = (now or datetime.now()).strftime(STAMP_FORMAT)
    dest = _unique_dir(Path(backups_dir), stamp)
    dest.mkdir(parents=True)

    copied = 0
    for name in names:
        src = Path(deploy_dir) / name
        if src.is_file():
            copy_file(str(src), str(dest / name))
            copied += 1
    logger.info("Backed up %d file(s) to %s", copied, dest)
    return dest


def list_backups(backups_dir: str) -> List[str]:
    d = Path(backups_dir)
    if not d.is_dir():
        return []
    return sorted(p.name for p in d.iterdir() if p.is_dir())


def restore_backup(deploy_dir: str, names: Iterable[str], backups_dir: str, stamp: str) -> List[str]:
    """Copy a backup's files back over the deploy dir, saving the current ones first."""

    src_dir = Path(backups_dir) / stamp
    if not src_dir.is_dir():
        available = ", ".join(list_backups(backups_dir)) or "none"
        raise PreconditionError(f"No backup {stamp!r} (available: {available})")

    names = list(names)
    create_backup(deploy_dir, names, backups_dir)

    restored: List[str] = []
    for name in names:
        src = src_dir / name
        if src.is_file():
            copy_file(str(src), str(Path(deploy_dir) / name))
            restored.append(name)
    logger.info("Restored %s from %s", ", ".join(restored) or "nothing", src_dir)
    return restored
