"""
Tests for the concrete installer steps, with docker/apt calls stubbed out.
"""

import stat

import pytest

from facilitator_deploy.context import InstallCtx
from facilitator_deploy.errors import PreconditionError
from facilitator_deploy.lib import compose
from facilitator_deploy.lib.command import CmdResult
from facilitator_deploy.steps import (
    DeployFilesStep,
    InstallDockerStep,
    MaterializeConfigStep,
    PullImagesStep,
    StartServicesStep,
    SystemUpdateStep,
    install_steps,
    redeploy_steps,
)


@pytest.fixture
def commands(monkeypatch):
    """Record every argv handed to run_cmd and pretend it succeeded."""

    seen = []

    def fake_run_cmd(argv, **kwargs):
        seen.append(list(argv))
        return CmdResult(argv=list(argv), returncode=0, stdout="", stderr="")

    monkeypatch.setattr("facilitator_deploy.lib.command.run_cmd", fake_run_cmd)
    monkeypatch.setattr("facilitator_deploy.lib.compose.run_cmd", fake_run_cmd)
    monkeypatch.setattr("facilitator_deploy.steps.step_10_system_update.run_cmd", fake_run_cmd)
    monkeypatch.setattr("facilitator_deploy.steps.step_20_install_docker.run_cmd", fake_run_cmd)
    return seen


def test_step_ordinals_are_contiguous():
    assert [s.ordinal for s in install_steps()] == [1, 2, 3, 4, 5, 6]
    assert [s.ordinal for s in redeploy_steps()] == [5, 6]


def test_system_update_runs_apt(ctx, commands):
    SystemUpdateStep().run(ctx)
    assert commands == [["apt-get", "update", "-qq"], ["apt-get", "upgrade", "-y", "-qq"]]


class TestInstallDocker:
    def test_satisfied_when_docker_and_compose_present(self, ctx, commands, monkeypatch):
        monkeypatch.setattr(compose, "docker_available", lambda: True)
        monkeypatch.setattr(compose, "compose_available", lambda: True)
        assert InstallDockerStep().satisfied(ctx)

    def test_installs_docker_when_missing(self, ctx, commands, monkeypatch):
        monkeypatch.setattr(compose, "docker_available", lambda: False)
        monkeypatch.setattr(compose, "compose_available", lambda: True)

        InstallDockerStep().run(ctx)

        assert ["systemctl", "enable", "--now", "docker"] in commands

    def test_missing_compose_plugin_fails(self, ctx, commands, monkeypatch):
        monkeypatch.setattr(compose, "docker_available", lambda: True)
        monkeypatch.setattr(compose, "compose_available", lambda: False)

        with pytest.raises(PreconditionError, match="docker-compose-plugin"):
            InstallDockerStep().run(ctx)


class TestDeployFiles:
    def test_copies_required_files(self, ctx, deploy_dir):
        DeployFilesStep().run(ctx)

        for name in ["docker-compose.yml", "Caddyfile", "config.example.toml"]:
            assert (deploy_dir / name).is_file()
        assert not (deploy_dir / "config.toml").exists()

    def test_no_launcher_file_needed(self, ctx, source_dir, deploy_dir):
        """fctl comes from the package's console script, not from the sources."""
        assert not (source_dir / "fctl").exists()

        DeployFilesStep().run(ctx)

        assert sorted(p.name for p in deploy_dir.iterdir()) == [
            "Caddyfile",
            "config.example.toml",
            "docker-compose.yml",
        ]

    def test_file_already_in_deploy_dir_is_kept(self, ctx, source_dir, deploy_dir):
        deploy_dir.mkdir(parents=True)
        (deploy_dir / "Caddyfile").write_text("kept\n")
        (source_dir / "Caddyfile").unlink()

        DeployFilesStep().run(ctx)

        assert (deploy_dir / "Caddyfile").read_text() == "kept\n"

    def test_missing_everywhere_fails(self, ctx, source_dir):
        (source_dir / "docker-compose.yml").unlink()
        with pytest.raises(PreconditionError, match="docker-compose.yml"):
            DeployFilesStep().run(ctx)

    def test_preconfigured_config_copied_only_once(self, ctx, source_dir, deploy_dir):
        (source_dir / "config.toml").write_text("first = true\n")
        DeployFilesStep().run(ctx)
        (source_dir / "config.toml").write_text("second = true\n")
        DeployFilesStep().run(ctx)

        assert (deploy_dir / "config.toml").read_text() == "first = true\n"


class TestMaterializeConfig:
    def test_creates_config_from_example(self, ctx, deploy_dir, caplog):
        deploy_dir.mkdir(parents=True)
        (deploy_dir / "config.example.toml").write_text("example = 1\n")
        step = MaterializeConfigStep()

        assert not step.satisfied(ctx)
        step.run(ctx)

        assert (deploy_dir / "config.toml").read_text() == "example = 1\n"
        assert stat.S_IMODE((deploy_dir / "config.toml").stat().st_mode) == 0o644
        assert "Non-interactive" in caplog.text
        assert step.satisfied(ctx)

    def test_interactive_mode_pauses(self, cfg, deploy_dir, monkeypatch):
        deploy_dir.mkdir(parents=True)
        (deploy_dir / "config.example.toml").write_text("example = 1\n")
        prompts = []
        monkeypatch.setattr("builtins.input", lambda prompt="": prompts.append(prompt) or "")

        MaterializeConfigStep().run(InstallCtx(cfg=cfg, interactive=True))

        assert len(prompts) == 1

    def test_missing_example_fails(self, ctx, deploy_dir):
        deploy_dir.mkdir(parents=True)
        with pytest.raises(PreconditionError):
            MaterializeConfigStep().run(ctx)


class TestComposeSteps:
    def test_pull(self, ctx, commands):
        PullImagesStep().run(ctx)
        assert commands == [["docker", "compose", "pull"]]

    def test_start_cleans_stale_containers_during_install(self, cfg, commands, monkeypatch):
        monkeypatch.setattr(compose, "containers_with_prefix", lambda prefix: ["x402-facilitator"])

        StartServicesStep().run(InstallCtx(cfg=cfg, interactive=False, clean_stale=True))

        assert commands == [
            ["docker", "rm", "-f", "x402-facilitator"],
            ["docker", "compose", "up", "-d", "--remove-orphans"],
        ]

    def test_redeploy_leaves_running_containers_alone(self, cfg, commands, monkeypatch):
        monkeypatch.setattr(compose, "containers_with_prefix", lambda prefix: ["x402-facilitator"])

        StartServicesStep().run(InstallCtx(cfg=cfg, interactive=False, force_recreate=True))

        assert commands == [["docker", "compose", "up", "-d", "--remove-orphans", "--force-recreate"]]
