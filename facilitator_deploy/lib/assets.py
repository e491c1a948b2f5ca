from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def copy_file(src: str, dst: str, *, mode: Optional[int] = None) -> None:
    s = Path(src)
    d = Path(dst)
    if not s.is_file():
        raise FileNotFoundError(src)

    d.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(s, d)
    if mode is not None:
        os.chmod(d, mode)
    logger.debug("Copied %s -> %s", s, d)


def atomic_write_text(path: str, text: str, *, mode: int = 0o644) -> None:
    """Replace ``path`` with ``text`` via a temp file in the same directory."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(p.parent), prefix=f".{p.name}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, p)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
