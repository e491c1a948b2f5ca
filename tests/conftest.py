"""Shared fixtures: a throwaway deploy root, source dir and scripted steps."""

from pathlib import Path
from typing import List

import pytest

from facilitator_deploy.config import DeployConfig
from facilitator_deploy.context import InstallCtx

REQUIRED_FILES = ["docker-compose.yml", "Caddyfile", "config.example.toml"]


class ScriptedStep:
    """A step that records its runs and can be told to fail or be satisfied."""

    def __init__(self, ordinal: int, calls: List[int], *, fail: bool = False, already: bool = False) -> None:
        self.ordinal = ordinal
        self.description = f"scripted step {ordinal}"
        self.calls = calls
        self.fail = fail
        self.already = already

    def satisfied(self, ctx: InstallCtx) -> bool:
        return self.already

    def run(self, ctx: InstallCtx) -> None:
        self.calls.append(self.ordinal)
        if self.fail:
            raise RuntimeError(f"simulated failure in step {self.ordinal}")


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    d = tmp_path / "src"
    d.mkdir()
    (d / "docker-compose.yml").write_text("services:\n  facilitator:\n    image: example/facilitator\n")
    (d / "Caddyfile").write_text("facilitator.example.com {\n  reverse_proxy facilitator:8080\n}\n")
    (d / "config.example.toml").write_text('[signer]\nprivate_key = "CHANGE_ME"\n')
    return d


@pytest.fixture
def deploy_dir(tmp_path: Path) -> Path:
    return tmp_path / "opt" / "facilitator"


@pytest.fixture
def cfg(source_dir: Path, deploy_dir: Path) -> DeployConfig:
    return DeployConfig(
        raw={
            "deploy_dir": str(deploy_dir),
            "source_dir": str(source_dir),
            "health": {"max_retries": 2, "interval": 0},
        }
    )


@pytest.fixture
def ctx(cfg: DeployConfig) -> InstallCtx:
    return InstallCtx(cfg=cfg, interactive=False)


@pytest.fixture
def scripted_steps():
    """Factory for six scripted steps sharing one call log."""

    def make(fail_at=None, already=()):
        calls: List[int] = []
        steps = [
            ScriptedStep(n, calls, fail=(n == fail_at), already=(n in already))
            for n in range(1, 7)
        ]
        return steps, calls

    return make
