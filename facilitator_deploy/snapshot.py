from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .lib.assets import atomic_write_text

logger = logging.getLogger(__name__)

Snapshot = Dict[str, str]


def fingerprint(path: Path) -> str:
    """MD5 of the file contents, matching what md5sum prints."""

    h = hashlib.md5()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def compute_snapshot(deploy_dir: str, names: Iterable[str]) -> Snapshot:
    root = Path(deploy_dir)
    snap: Snapshot = {}
    for name in names:
        p = root / name
        if p.is_file():
            snap[name] = fingerprint(p)
    return snap


def format_snapshot(snap: Snapshot) -> str:
    return "".join(f"{digest}  {name}\n" for name, digest in sorted(snap.items()))


def parse_snapshot(text: str) -> Snapshot:
    snap: Snapshot = {}
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = line.split(None, 1)
        if len(parts) != 2:
            logger.warning("Ignoring malformed snapshot line %r", line)
            continue
        digest, name = parts
        # md5sum marks binary-mode entries with a leading '*'
        snap[name.lstrip("*")] = digest
    return snap


def load_snapshot(path: str) -> Optional[Snapshot]:
    """Return the recorded snapshot, or None when none was ever written."""

    p = Path(path)
    if not p.exists():
        return None
    return parse_snapshot(p.read_text(encoding="utf-8"))


def save_snapshot(path: str, snap: Snapshot) -> None:
    atomic_write_text(path, format_snapshot(snap))
    logger.info("Saved config checksums (%d files) to %s", len(snap), path)


def diff_snapshots(recorded: Optional[Snapshot], current: Snapshot, names: Iterable[str]) -> List[str]:
    """Names whose fingerprint differs; no recorded snapshot means everything changed."""

    names = list(names)
    if recorded is None:
        return [n for n in names if n in current]
    return [n for n in names if recorded.get(n) != current.get(n)]


def record_snapshot(deploy_dir: str, names: Iterable[str], path: str) -> Snapshot:
    snap = compute_snapshot(deploy_dir, names)
    save_snapshot(path, snap)
    return snap
