from __future__ import annotations

import logging

from ..context import InstallCtx
from ..lib.command import run_cmd

logger = logging.getLogger(__name__)


class SystemUpdateStep:
    ordinal = 1
    description = "Updating system packages"

    def satisfied(self, ctx: InstallCtx) -> bool:
        return False

    def run(self, ctx: InstallCtx) -> None:
        env = {"DEBIAN_FRONTEND": "noninteractive"}
        run_cmd(["apt-get", "update", "-qq"], env=env)
        run_cmd(["apt-get", "upgrade", "-y", "-qq"], env=env)
        logger.info("System updated")
