"""fctl: day-two operations for a deployed facilitator.

``deploy``/``update`` replay the image pull + start tail of the installer,
``reload`` restarts only what changed config requires, and the rest are thin
wrappers over docker compose.
"""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from pathlib import Path
from typing import List, Optional

from . import backup as backups
from .config import EDIT_TARGETS, DeployConfig, load_config
from .context import InstallCtx
from .errors import DeployError, PreconditionError
from .health import check_health
from .lib import compose
from .lib.command import run_cmd
from .lib.locking import deploy_lock
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .main import HealthProbe, probe_after_deploy
from .pipeline import PipelineResult, run_pipeline
from .preflight import run_preflight
from .reconcile import ConfigReconciler, ReconcileResult
from .snapshot import compute_snapshot, diff_snapshots, load_snapshot, record_snapshot
from .steps import redeploy_steps

logger = logging.getLogger(__name__)


def make_reconciler(cfg: DeployConfig) -> ConfigReconciler:
    deploy_dir = cfg.deploy_dir
    return ConfigReconciler(
        deploy_dir=deploy_dir,
        dependencies=cfg.tracked_files,
        snapshot_path=cfg.snapshot_path,
        restart=lambda service: compose.recreate_service(deploy_dir, service),
    )


def redeploy(
    cfg: DeployConfig,
    *,
    force_recreate: bool,
    health_probe: Optional[HealthProbe] = None,
) -> PipelineResult:
    """Pull images and (re)start every service, then re-record config checksums."""

    ctx = InstallCtx(cfg=cfg, interactive=False, force_recreate=force_recreate)
    with deploy_lock(cfg.deploy_dir):
        result = run_pipeline(ctx=ctx, steps=redeploy_steps(), force=True)
        (health_probe or probe_after_deploy)(cfg)
        record_snapshot(cfg.deploy_dir, cfg.tracked_files, cfg.snapshot_path)
    return result


def reload(cfg: DeployConfig, *, dry_run: bool = False) -> ReconcileResult:
    with deploy_lock(cfg.deploy_dir):
        return make_reconciler(cfg).reconcile(dry_run=dry_run)


def drifted_files(cfg: DeployConfig) -> Optional[List[str]]:
    recorded = load_snapshot(cfg.snapshot_path)
    if recorded is None:
        return None
    names = list(cfg.tracked_files)
    return diff_snapshots(recorded, compute_snapshot(cfg.deploy_dir, names), names)


def _confirm(args: argparse.Namespace, prompt: str) -> None:
    if args.yes:
        return
    if not sys.stdin.isatty():
        raise PreconditionError("Refusing to continue without --yes in non-interactive mode")
    answer = input(f"{prompt} Type 'yes' to continue: ").strip().lower()
    if answer != "yes":
        raise PreconditionError("Aborted by operator")


def _cfg(args: argparse.Namespace) -> DeployConfig:
    return load_config(args.config, overrides={"deploy_dir": args.deploy_dir})


def _reload_exit(result: ReconcileResult) -> int:
    if result.no_change:
        print("No changes")
        return 0
    for name in result.changed:
        print(f"changed: {name}")
    for service in result.restarted:
        print(f"restarted: {service}")
    for err in result.failed:
        print(f"FAILED: {err}", file=sys.stderr)
    return 0 if result.ok else 1


def cmd_deploy(args: argparse.Namespace) -> int:
    redeploy(_cfg(args), force_recreate=True)
    return 0


def cmd_update(args: argparse.Namespace) -> int:
    redeploy(_cfg(args), force_recreate=False)
    return 0


def cmd_reload(args: argparse.Namespace) -> int:
    result = reload(_cfg(args), dry_run=bool(args.dry_run))
    if args.dry_run and not result.no_change:
        print(f"would restart: {', '.join(result.restart_set)}")
        return 0
    return _reload_exit(result)


def cmd_status(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    print(compose.ps(cfg.deploy_dir).rstrip())

    h = check_health(cfg.health_url, timeout=cfg.health_timeout)
    print(f"health: {'healthy' if h.healthy else 'unhealthy'}" + (f" ({h.error})" if h.error else ""))

    drift = drifted_files(cfg)
    if drift is None:
        print("config: no snapshot recorded (run fctl deploy)")
    elif drift:
        print(f"config: changed since last deploy: {', '.join(drift)} (run fctl reload)")
    else:
        print("config: in sync")
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    report = run_preflight(cfg, require_root=False, check_sources=False)

    ok = Path(cfg.deploy_dir).is_dir()
    report.add("Deploy dir", ok, cfg.deploy_dir if ok else f"{cfg.deploy_dir} missing (run setup)")

    report.add("Docker", compose.docker_available(), "docker binary on PATH")
    if compose.docker_available():
        report.add("Compose", compose.compose_available(), f"docker compose {compose.compose_version()}")
        if ok:
            v = compose.validate(cfg.deploy_dir)
            report.add("Compose file", v.ok, "valid" if v.ok else (v.stderr.strip() or "invalid"))

    h = check_health(cfg.health_url, timeout=cfg.health_timeout)
    report.add("Health", h.healthy, h.url if h.healthy else f"{h.url}: {h.error}", fatal=False)

    drift = drifted_files(cfg)
    if drift is None:
        report.add("Config snapshot", False, "not recorded", fatal=False)
    else:
        report.add("Config snapshot", not drift, "in sync" if not drift else f"drifted: {', '.join(drift)}", fatal=False)

    report.log()
    return 0 if report.ok else 1


def cmd_logs(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    service = None if args.service == "all" else args.service
    return compose.follow_logs(cfg.deploy_dir, service)


def cmd_edit(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    name = EDIT_TARGETS[args.target]
    path = Path(cfg.deploy_dir) / name
    if not path.is_file():
        raise PreconditionError(f"{path} does not exist (run setup first)")

    backups.create_backup(cfg.deploy_dir, [name], cfg.backups_dir)
    run_cmd([*shlex.split(cfg.editor), str(path)], capture=False)
    return _reload_exit(reload(cfg))


def cmd_backup(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    dest = backups.create_backup(cfg.deploy_dir, cfg.tracked_files, cfg.backups_dir)
    print(dest.name)
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    if not args.timestamp:
        for name in backups.list_backups(cfg.backups_dir):
            print(name)
        return 0
    with deploy_lock(cfg.deploy_dir):
        backups.restore_backup(cfg.deploy_dir, cfg.tracked_files, cfg.backups_dir, args.timestamp)
    return _reload_exit(reload(cfg))


def cmd_reset(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    _confirm(args, "This stops all services and deletes their volumes.")
    with deploy_lock(cfg.deploy_dir):
        compose.down(cfg.deploy_dir, volumes=True)
        snap = Path(cfg.snapshot_path)
        if snap.exists():
            snap.unlink()
    logger.info("Stack stopped and volumes removed")
    return 0


def cmd_purge(args: argparse.Namespace) -> int:
    cfg = _cfg(args)
    prefix = cfg.container_prefix
    _confirm(args, f"This force-removes every container, volume and network named {prefix}*.")
    with deploy_lock(cfg.deploy_dir):
        compose.remove_containers(compose.containers_with_prefix(prefix))
        compose.remove_volumes(compose.volumes_with_prefix(prefix))
        compose.remove_networks(compose.networks_with_prefix(prefix))
    logger.info("Purged %s* resources", prefix)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fctl", description="Facilitator operations")
    p.add_argument("--config", default=None, help="Path to deploy config (yaml)")
    p.add_argument("--deploy-dir", default=None, help="Deployment root (default /opt/facilitator)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to log file")
    p.add_argument("-v", "--verbose", action="store_true")

    sub = p.add_subparsers(dest="subcmd", required=True)

    sp = sub.add_parser("deploy", help="Pull latest images + recreate all containers + health check")
    sp.set_defaults(func=cmd_deploy)

    sp = sub.add_parser("update", help="Pull latest images + rolling restart")
    sp.set_defaults(func=cmd_update)

    sp = sub.add_parser("reload", help="Restart only services whose config changed")
    sp.add_argument("--dry-run", action="store_true", help="Show the restart set without acting")
    sp.set_defaults(func=cmd_reload)

    sp = sub.add_parser("status", help="Service dashboard (status, health, config drift)")
    sp.set_defaults(func=cmd_status)

    sp = sub.add_parser("doctor", help="Run full diagnostics")
    sp.set_defaults(func=cmd_doctor)

    sp = sub.add_parser("logs", help="Follow service logs")
    sp.add_argument("service", nargs="?", default="facilitator", help="Service name or 'all'")
    sp.set_defaults(func=cmd_logs)

    sp = sub.add_parser("edit", help="Edit a config file (auto-backup + reload)")
    sp.add_argument("target", choices=sorted(EDIT_TARGETS))
    sp.set_defaults(func=cmd_edit)

    sp = sub.add_parser("backup", help="Backup all tracked config files")
    sp.set_defaults(func=cmd_backup)

    sp = sub.add_parser("restore", help="Restore config files from a backup (lists backups without argument)")
    sp.add_argument("timestamp", nargs="?", default=None)
    sp.set_defaults(func=cmd_restore)

    sp = sub.add_parser("reset", help="Stop all services and remove volumes (destructive!)")
    sp.add_argument("--yes", action="store_true")
    sp.set_defaults(func=cmd_reset)

    sp = sub.add_parser("purge", help="Force-remove all prefixed containers/volumes/networks")
    sp.add_argument("--yes", action="store_true")
    sp.set_defaults(func=cmd_purge)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        return int(args.func(args))
    except DeployError as e:
        logger.error("%s", e)
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error("Invalid deploy config: %s", e)
        return 1
    except OSError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
