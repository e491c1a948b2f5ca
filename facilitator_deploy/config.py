from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

DEFAULT_DEPLOY_DIR = "/opt/facilitator"

DEFAULT_REQUIRED_FILES = ["docker-compose.yml", "Caddyfile", "config.example.toml"]

# Tracked config file -> services that must be recreated when it changes.
DEFAULT_TRACKED_FILES: Dict[str, List[str]] = {
    "config.toml": ["facilitator"],
    "Caddyfile": ["caddy"],
    "docker-compose.yml": ["facilitator", "caddy", "watchtower"],
}

# fctl edit <target> -> tracked file
EDIT_TARGETS = {
    "config": "config.toml",
    "caddy": "Caddyfile",
    "compose": "docker-compose.yml",
}


@dataclass(frozen=True)
class DeployConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def deploy_dir(self) -> str:
        return str(self.raw.get("deploy_dir") or DEFAULT_DEPLOY_DIR)

    @property
    def source_dir(self) -> str:
        return str(self.raw.get("source_dir") or os.getcwd())

    @property
    def required_files(self) -> List[str]:
        return list(self.raw.get("required_files") or DEFAULT_REQUIRED_FILES)

    @property
    def tracked_files(self) -> Dict[str, List[str]]:
        tracked = self.raw.get("tracked_files") or DEFAULT_TRACKED_FILES
        return {str(name): [str(s) for s in services] for name, services in tracked.items()}

    @property
    def health_url(self) -> str:
        return str(self._section("health").get("url") or "http://localhost:8080/health")

    @property
    def health_max_retries(self) -> int:
        return int(self._section("health").get("max_retries", 15))

    @property
    def health_interval(self) -> float:
        return float(self._section("health").get("interval", 4.0))

    @property
    def health_timeout(self) -> float:
        return float(self._section("health").get("timeout", 3.0))

    @property
    def container_prefix(self) -> str:
        return str(self.raw.get("container_prefix") or "x402-")

    @property
    def min_disk_gb(self) -> int:
        return int(self._section("preflight").get("min_disk_gb", 2))

    @property
    def min_memory_mb(self) -> int:
        return int(self._section("preflight").get("min_memory_mb", 512))

    @property
    def ports(self) -> List[int]:
        return [int(p) for p in (self._section("preflight").get("ports") or [80, 443])]

    @property
    def editor(self) -> str:
        return str(self.raw.get("editor") or os.environ.get("EDITOR") or "nano")

    @property
    def state_path(self) -> str:
        return str(Path(self.deploy_dir) / ".setup-state")

    @property
    def snapshot_path(self) -> str:
        return str(Path(self.deploy_dir) / ".config-checksums")

    @property
    def backups_dir(self) -> str:
        return str(Path(self.deploy_dir) / "backups")

    def with_overrides(self, **overrides: Any) -> "DeployConfig":
        raw = dict(self.raw)
        raw.update({k: v for k, v in overrides.items() if v is not None})
        return DeployConfig(raw=raw)


def load_config(path: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> DeployConfig:
    """Load a YAML deploy config; no path means built-in defaults."""

    raw: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(path)
        if p.suffix.lower() not in {".yaml", ".yml"}:
            raise ValueError("deploy config must be YAML")
        loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"{path} must contain a mapping/object")
        raw = loaded

    cfg = DeployConfig(raw=raw)
    if overrides:
        cfg = cfg.with_overrides(**overrides)
    return cfg
