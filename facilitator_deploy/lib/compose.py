from __future__ import annotations

import logging
import shutil
from typing import Iterable, List, Optional, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

COMPOSE = ["docker", "compose"]


def _compose(deploy_dir: str, args: Sequence[str], **kwargs) -> CmdResult:
    return run_cmd([*COMPOSE, *args], cwd=deploy_dir, **kwargs)


def docker_available() -> bool:
    return shutil.which("docker") is not None


def compose_available() -> bool:
    if not docker_available():
        return False
    return run_cmd([*COMPOSE, "version"], check=False).ok


def compose_version() -> str:
    r = run_cmd([*COMPOSE, "version", "--short"], check=False)
    return r.stdout.strip() if r.ok else "unknown"


def pull(deploy_dir: str) -> None:
    _compose(deploy_dir, ["pull"])


def up(deploy_dir: str, *, force_recreate: bool = False) -> None:
    args = ["up", "-d", "--remove-orphans"]
    if force_recreate:
        args.append("--force-recreate")
    _compose(deploy_dir, args)


def recreate_service(deploy_dir: str, service: str) -> None:
    """Recreate one service so it picks up both mounted config and compose changes."""

    _compose(deploy_dir, ["up", "-d", "--no-deps", "--force-recreate", service])


def down(deploy_dir: str, *, volumes: bool = False) -> None:
    args = ["down"]
    if volumes:
        args.append("-v")
    _compose(deploy_dir, args)


def ps(deploy_dir: str) -> str:
    return _compose(deploy_dir, ["ps"], check=False).stdout


def validate(deploy_dir: str) -> CmdResult:
    return _compose(deploy_dir, ["config", "--quiet"], check=False)


def follow_logs(deploy_dir: str, service: Optional[str] = None, *, tail: int = 100) -> int:
    args = ["logs", "-f", "--tail", str(tail)]
    if service:
        args.append(service)
    return _compose(deploy_dir, args, check=False, capture=False).returncode


def _names(argv: Sequence[str]) -> List[str]:
    r = run_cmd(argv, check=False)
    if not r.ok:
        return []
    return [line.strip() for line in r.stdout.splitlines() if line.strip()]


def containers_with_prefix(prefix: str) -> List[str]:
    return _names(["docker", "ps", "-a", "--filter", f"name={prefix}", "--format", "{{.Names}}"])


def volumes_with_prefix(prefix: str) -> List[str]:
    return [v for v in _names(["docker", "volume", "ls", "--format", "{{.Name}}"]) if v.startswith(prefix)]


def networks_with_prefix(prefix: str) -> List[str]:
    return [n for n in _names(["docker", "network", "ls", "--format", "{{.Name}}"]) if n.startswith(prefix)]


def remove_containers(names: Iterable[str]) -> List[str]:
    """Force-remove containers, returning the names actually removed."""

    removed: List[str] = []
    for name in names:
        if run_cmd(["docker", "rm", "-f", name], check=False).ok:
            logger.info("Removed container %s", name)
            removed.append(name)
        else:
            logger.warning("Could not remove container %s", name)
    return removed


def remove_volumes(names: Iterable[str]) -> None:
    for name in names:
        if not run_cmd(["docker", "volume", "rm", "-f", name], check=False).ok:
            logger.warning("Could not remove volume %s", name)


def remove_networks(names: Iterable[str]) -> None:
    for name in names:
        if not run_cmd(["docker", "network", "rm", name], check=False).ok:
            logger.warning("Could not remove network %s", name)
