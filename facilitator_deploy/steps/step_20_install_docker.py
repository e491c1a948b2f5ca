from __future__ import annotations

import logging

from ..context import InstallCtx
from ..errors import PreconditionError
from ..lib import compose
from ..lib.command import run_cmd

logger = logging.getLogger(__name__)

GET_DOCKER_URL = "https://get.docker.com"


class InstallDockerStep:
    ordinal = 2
    description = "Installing Docker"

    def satisfied(self, ctx: InstallCtx) -> bool:
        if compose.docker_available() and compose.compose_available():
            logger.info("Docker Compose already installed: %s", compose.compose_version())
            return True
        return False

    def run(self, ctx: InstallCtx) -> None:
        if compose.docker_available():
            logger.info("Docker already installed")
        else:
            # The convenience script is piped to sh the same way the docs show it.
            run_cmd(["sh", "-c", f"curl -fsSL {GET_DOCKER_URL} | sh"])
            run_cmd(["systemctl", "enable", "--now", "docker"])
            logger.info("Docker installed")

        if not compose.compose_available():
            raise PreconditionError(
                "Docker Compose plugin not found. Install: apt-get install docker-compose-plugin"
            )
        logger.info("Docker Compose: %s", compose.compose_version())
