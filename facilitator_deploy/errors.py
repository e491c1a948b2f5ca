from __future__ import annotations

import shlex
from typing import Sequence


class DeployError(RuntimeError):
    """Base class for every failure the CLIs report to the operator."""


class PreconditionError(DeployError):
    """Privileges, resources or inputs are missing; nothing was mutated."""


class StepExecutionError(DeployError):
    def __init__(self, ordinal: int, description: str, reason: str) -> None:
        super().__init__(f"Step {ordinal} ({description}) failed: {reason}")
        self.ordinal = ordinal
        self.description = description
        self.reason = reason


class HealthCheckTimeout(DeployError):
    def __init__(self, url: str, attempts: int, waited_s: float) -> None:
        super().__init__(f"Health check timed out after {waited_s:g}s ({attempts} attempts): {url}")
        self.url = url
        self.attempts = attempts
        self.waited_s = waited_s


class ReconcileRestartError(DeployError):
    def __init__(self, service: str, reason: str) -> None:
        super().__init__(f"Restart of {service} failed: {reason}")
        self.service = service
        self.reason = reason


class CommandError(DeployError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str) -> None:
        super().__init__(f"Command failed ({returncode}): {shlex.join(argv)}\n{stderr}".rstrip())
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
