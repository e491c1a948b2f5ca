from __future__ import annotations

import logging

from ..context import InstallCtx
from ..errors import PreconditionError
from ..lib.assets import copy_file

logger = logging.getLogger(__name__)


class DeployFilesStep:
    ordinal = 3
    description = "Copying deploy files"

    def satisfied(self, ctx: InstallCtx) -> bool:
        return False

    def run(self, ctx: InstallCtx) -> None:
        src_dir = ctx.source_dir
        dst_dir = ctx.deploy_dir
        dst_dir.mkdir(parents=True, exist_ok=True)

        same_dir = src_dir.resolve() == dst_dir.resolve()
        for name in ctx.cfg.required_files:
            src = src_dir / name
            dst = dst_dir / name
            if src.is_file() and not same_dir:
                copy_file(str(src), str(dst))
            elif not dst.is_file():
                raise PreconditionError(f"Missing {name}; cannot continue")

        # A config.toml prepared next to the sources wins only on first deploy.
        pre_configured = src_dir / "config.toml"
        if pre_configured.is_file() and not ctx.config_toml.exists():
            copy_file(str(pre_configured), str(ctx.config_toml), mode=0o644)
            logger.info("config.toml copied from source directory")

        logger.info("Deploy files ready in %s", dst_dir)

