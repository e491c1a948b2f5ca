from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

from .config import DeployConfig


def _stdin_is_tty() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


@dataclass(frozen=True)
class InstallCtx:
    cfg: DeployConfig
    interactive: bool = field(default_factory=_stdin_is_tty)
    force_recreate: bool = False
    clean_stale: bool = False

    @property
    def deploy_dir(self) -> Path:
        return Path(self.cfg.deploy_dir)

    @property
    def source_dir(self) -> Path:
        return Path(self.cfg.source_dir)

    @property
    def config_toml(self) -> Path:
        return self.deploy_dir / "config.toml"
