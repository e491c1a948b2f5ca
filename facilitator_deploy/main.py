from __future__ import annotations

import argparse
import logging
from typing import Callable, Optional, Sequence

from .config import DeployConfig, load_config
from .context import InstallCtx
from .errors import DeployError
from .health import wait_healthy
from .lib.locking import deploy_lock
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import PipelineResult, Step, run_pipeline
from .preflight import run_preflight
from .snapshot import record_snapshot
from .state_store import MarkerStore
from .steps import install_steps

logger = logging.getLogger(__name__)

HealthProbe = Callable[[DeployConfig], bool]

QUICK_REFERENCE = """\
  Quick Reference:

    fctl status       Dashboard
    fctl logs         View facilitator logs
    fctl doctor       Run diagnostics
    fctl edit config  Edit config.toml (auto-backup + reload)
    fctl deploy       Redeploy after config changes
    fctl update       Pull latest images
    fctl --help       All commands

  Next steps:
    1. Edit config:    fctl edit config   (signer keys, chains, RPC)
    2. Edit domain:    fctl edit caddy
    3. Verify:         curl https://YOUR_DOMAIN/health
"""


def probe_after_deploy(cfg: DeployConfig) -> bool:
    logger.info("Waiting for health check...")
    return wait_healthy(
        cfg.health_url,
        max_retries=cfg.health_max_retries,
        interval=cfg.health_interval,
        timeout=cfg.health_timeout,
    )


def install(
    cfg: DeployConfig,
    *,
    steps: Optional[Sequence[Step]] = None,
    force: bool = False,
    interactive: Optional[bool] = None,
    require_root: bool = True,
    preflight: bool = True,
    health_probe: Optional[HealthProbe] = None,
) -> PipelineResult:
    """Run the resumable installer against ``cfg.deploy_dir``.

    Pre-flight failures abort before any step runs. A failing step raises
    StepExecutionError with the markers of earlier steps kept on disk; a
    complete run records the config snapshot and deletes the markers.
    """

    if preflight:
        logger.info("Running pre-flight checks...")
        report = run_preflight(cfg, require_root=require_root)
        report.log()
        report.raise_for_failures()

    steps = list(steps) if steps is not None else install_steps()
    if interactive is None:
        ctx = InstallCtx(cfg=cfg, clean_stale=True)
    else:
        ctx = InstallCtx(cfg=cfg, interactive=interactive, clean_stale=True)

    with deploy_lock(cfg.deploy_dir):
        store = MarkerStore(cfg.state_path)
        store.load(total=steps[-1].ordinal if steps else 0)
        if store.completed and not force:
            logger.info("Resuming: steps %s already done", store.completed)

        result = run_pipeline(ctx=ctx, steps=steps, store=store, force=force)

        # A slow first boot is not an install failure.
        (health_probe or probe_after_deploy)(cfg)

        record_snapshot(cfg.deploy_dir, cfg.tracked_files, cfg.snapshot_path)
        store.clear()

    logger.info("Deployment complete (ran=%s skipped=%s)", result.ran_steps, result.skipped_steps)
    return result


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="facilitator-setup", description="Idempotent, resumable facilitator deployment")
    p.add_argument("--config", default=None, help="Path to deploy config (yaml)")
    p.add_argument("--deploy-dir", default=None, help="Deployment root (default /opt/facilitator)")
    p.add_argument("--source-dir", default=None, help="Directory holding docker-compose.yml, Caddyfile, ...")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to setup log")
    p.add_argument("--check", action="store_true", help="Run pre-flight checks only")
    p.add_argument("--force", action="store_true", help="Ignore saved state, redo all steps")
    p.add_argument("--non-interactive", action="store_true", help="Never pause for config edits")
    p.add_argument("-v", "--verbose", action="store_true")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        cfg = load_config(args.config, overrides={"deploy_dir": args.deploy_dir, "source_dir": args.source_dir})

        if args.check:
            report = run_preflight(cfg)
            report.log()
            if report.ok:
                logger.info("All pre-flight checks passed.")
                return 0
            logger.error("Some checks failed.")
            return 1

        install(cfg, force=args.force, interactive=False if args.non_interactive else None)
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
        logger.warning("Interrupted; re-run setup to resume from the first unfinished step")
        return 130

    print()
    print(QUICK_REFERENCE)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
