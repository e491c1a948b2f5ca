from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .config import DeployConfig
from .errors import PreconditionError
from .lib.command import run_cmd

logger = logging.getLogger(__name__)

OS_RELEASE = "/etc/os-release"
MEMINFO = "/proc/meminfo"


@dataclass(frozen=True)
class Check:
    name: str
    ok: bool
    fatal: bool
    detail: str


@dataclass
class PreflightReport:
    checks: List[Check] = field(default_factory=list)

    def add(self, name: str, ok: bool, detail: str, *, fatal: bool = True) -> None:
        self.checks.append(Check(name=name, ok=ok, fatal=fatal, detail=detail))

    @property
    def ok(self) -> bool:
        return all(c.ok for c in self.checks if c.fatal)

    @property
    def failures(self) -> List[Check]:
        return [c for c in self.checks if c.fatal and not c.ok]

    def log(self) -> None:
        for c in self.checks:
            if c.ok:
                logger.info("[ OK ] %s: %s", c.name, c.detail)
            elif c.fatal:
                logger.error("[ERR ] %s: %s", c.name, c.detail)
            else:
                logger.warning("[WARN] %s: %s", c.name, c.detail)

    def raise_for_failures(self) -> None:
        if not self.ok:
            names = ", ".join(c.name for c in self.failures)
            raise PreconditionError(f"Pre-flight checks failed ({names}). Fix the issues above and re-run.")


def _read_os_release(path: str) -> Optional[Dict[str, str]]:
    p = Path(path)
    if not p.is_file():
        return None
    info: Dict[str, str] = {}
    for line in p.read_text(encoding="utf-8", errors="ignore").splitlines():
        if "=" in line and not line.startswith("#"):
            k, v = line.split("=", 1)
            info[k.strip()] = v.strip().strip('"')
    return info


def total_memory_mb(path: str = MEMINFO) -> Optional[int]:
    p = Path(path)
    if not p.is_file():
        return None
    for line in p.read_text(encoding="utf-8", errors="ignore").splitlines():
        if line.startswith("MemTotal:"):
            parts = line.split()
            if len(parts) >= 2 and parts[1].isdigit():
                return int(parts[1]) // 1024
    return None


def listening_ports() -> Optional[set[int]]:
    r = run_cmd(["ss", "-tln"], check=False)
    if not r.ok:
        return None
    ports: set[int] = set()
    for line in r.stdout.splitlines()[1:]:
        cols = line.split()
        if len(cols) < 4:
            continue
        _, _, port = cols[3].rpartition(":")
        if port.isdigit():
            ports.add(int(port))
    return ports


def run_preflight(
    cfg: DeployConfig,
    *,
    require_root: bool = True,
    check_sources: bool = True,
    os_release: str = OS_RELEASE,
    meminfo: str = MEMINFO,
) -> PreflightReport:
    report = PreflightReport()

    if require_root:
        is_root = os.geteuid() == 0
        report.add("Privileges", is_root, "running as root" if is_root else "please run as root (sudo)")

    info = _read_os_release(os_release)
    if info is None:
        report.add("OS", False, "cannot detect OS")
    else:
        pretty = info.get("PRETTY_NAME") or f"{info.get('ID', '?')} {info.get('VERSION_ID', '')}".strip()
        report.add("OS", True, pretty)

    probe = Path(cfg.deploy_dir)
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    avail_gb = shutil.disk_usage(str(probe)).free // (1024 ** 3)
    report.add(
        "Disk",
        avail_gb >= cfg.min_disk_gb,
        f"{avail_gb}GB available (need >= {cfg.min_disk_gb}GB)",
    )

    mem = total_memory_mb(meminfo)
    report.add(
        "Memory",
        mem is not None and mem >= cfg.min_memory_mb,
        f"{mem if mem is not None else 'unknown'}MB total (recommend >= {cfg.min_memory_mb}MB)",
        fatal=False,
    )

    busy = listening_ports()
    for port in cfg.ports:
        if busy is None:
            report.add(f"Port {port}", False, "could not inspect listening sockets", fatal=False)
        elif port in busy:
            report.add(f"Port {port}", False, "already in use (may conflict with Caddy)", fatal=False)
        else:
            report.add(f"Port {port}", True, "available", fatal=False)

    if check_sources:
        src = Path(cfg.source_dir)
        dst = Path(cfg.deploy_dir)
        for name in cfg.required_files:
            if (src / name).is_file():
                report.add(f"Source {name}", True, str(src / name))
            elif (dst / name).is_file():
                report.add(f"Source {name}", True, f"{dst / name} (in deploy dir)")
            else:
                report.add(f"Source {name}", False, "missing")

    return report
