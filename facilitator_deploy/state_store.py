from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Set

from .lib.assets import atomic_write_text

logger = logging.getLogger(__name__)

MARKER_PREFIX = "DONE:"


class CorruptMarkerStore(ValueError):
    pass


def parse_markers(text: str) -> Set[int]:
    """Parse ``DONE:<ordinal>`` lines; anything else is corruption."""

    done: Set[int] = set()
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        if not line.startswith(MARKER_PREFIX):
            raise CorruptMarkerStore(f"line {lineno}: unexpected marker {line!r}")
        try:
            done.add(int(line[len(MARKER_PREFIX):]))
        except ValueError as e:
            raise CorruptMarkerStore(f"line {lineno}: bad ordinal in {line!r}") from e
    return done


def validate_contiguous(done: Set[int], total: int) -> None:
    """Markers must be exactly {1..k} with k <= total."""

    if not done:
        return
    expected = set(range(1, max(done) + 1))
    if done != expected:
        missing = sorted(expected - done)
        raise CorruptMarkerStore(f"gap in completed steps (missing {missing})")
    if max(done) > total:
        raise CorruptMarkerStore(f"marker for step {max(done)} but only {total} steps exist")


class MarkerStore:
    """Durable record of which installer steps completed.

    The on-disk format stays a flat ``DONE:<n>`` file so operators can read it,
    but every mutation rewrites the whole file atomically.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._done: Optional[Set[int]] = None

    def load(self, total: int) -> Set[int]:
        """Read and validate markers; corruption clears the store for a full re-run."""

        if not self.path.exists():
            self._done = set()
            return set(self._done)

        try:
            done = parse_markers(self.path.read_text(encoding="utf-8"))
            validate_contiguous(done, total)
        except CorruptMarkerStore as e:
            logger.warning("Marker store %s is corrupt (%s); all steps will re-run", self.path, e)
            self.clear()
            done = set()

        self._done = done
        return set(done)

    @property
    def completed(self) -> List[int]:
        return sorted(self._done or set())

    def is_done(self, ordinal: int) -> bool:
        return ordinal in (self._done or set())

    def mark_done(self, ordinal: int) -> None:
        done = set(self._done or set())
        done.add(ordinal)
        text = "".join(f"{MARKER_PREFIX}{n}\n" for n in sorted(done))
        atomic_write_text(str(self.path), text)
        self._done = done

    def clear(self) -> None:
        self._done = set()
        if self.path.exists():
            self.path.unlink()
            logger.info("Cleared marker store %s", self.path)
