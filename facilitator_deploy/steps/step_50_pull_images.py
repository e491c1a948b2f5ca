from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib import compose

logger = logging.getLogger(__name__)


class PullImagesStep:
    ordinal = 5
    description = "Pulling Docker images"

    def satisfied(self, ctx: InstallCtx) -> bool:
        return False

    def run(self, ctx: InstallCtx) -> None:
        compose.pull(str(ctx.deploy_dir))
        logger.info("Images pulled")
