from __future__ import annotations

import logging

from ..context import InstallCtx
from ..errors import PreconditionError
from ..lib.assets import copy_file

logger = logging.getLogger(__name__)


class MaterializeConfigStep:
    ordinal = 4
    description = "Checking facilitator config"

    def satisfied(self, ctx: InstallCtx) -> bool:
        if ctx.config_toml.exists():
            logger.info("config.toml already exists")
            return True
        return False

    def run(self, ctx: InstallCtx) -> None:
        example = ctx.deploy_dir / "config.example.toml"
        if not example.is_file():
            raise PreconditionError(f"{example} missing; re-run with --force to redeploy files")

        copy_file(str(example), str(ctx.config_toml), mode=0o644)
        logger.warning("config.toml created; add your signer private keys:")
        logger.warning("  %s %s", ctx.cfg.editor, ctx.config_toml)

        if ctx.interactive:
            input("Press Enter after editing (or Ctrl+C to abort, re-run setup to resume)... ")
        else:
            logger.warning("Non-interactive mode: add signer keys before first use!")
