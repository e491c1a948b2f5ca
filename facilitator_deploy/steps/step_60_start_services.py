from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib import compose

logger = logging.getLogger(__name__)


class StartServicesStep:
    ordinal = 6
    description = "Starting services"

    def satisfied(self, ctx: InstallCtx) -> bool:
        return False

    def run(self, ctx: InstallCtx) -> None:
        # Leftover containers from an earlier project name block fixed container names.
        stale = compose.containers_with_prefix(ctx.cfg.container_prefix) if ctx.clean_stale else []
        if stale:
            logger.warning("Found stale containers; cleaning up first: %s", ", ".join(stale))
            compose.remove_containers(stale)

        compose.up(str(ctx.deploy_dir), force_recreate=ctx.force_recreate)
        logger.info("Services started")
