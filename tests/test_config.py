import pytest

from facilitator_deploy.config import DEFAULT_TRACKED_FILES, DeployConfig, load_config


def test_defaults_without_file():
    cfg = load_config(None)

    assert cfg.deploy_dir == "/opt/facilitator"
    assert cfg.required_files == ["docker-compose.yml", "Caddyfile", "config.example.toml"]
    assert cfg.tracked_files == DEFAULT_TRACKED_FILES
    assert cfg.health_url == "http://localhost:8080/health"
    assert (cfg.health_max_retries, cfg.health_interval) == (15, 4.0)
    assert cfg.container_prefix == "x402-"
    assert cfg.state_path == "/opt/facilitator/.setup-state"
    assert cfg.snapshot_path == "/opt/facilitator/.config-checksums"


def test_yaml_values_and_overrides(tmp_path):
    path = tmp_path / "deploy.yaml"
    path.write_text(
        "deploy_dir: /srv/facilitator\n"
        "health:\n"
        "  url: http://127.0.0.1:9090/health\n"
        "  max_retries: 0\n"
        "tracked_files:\n"
        "  config.toml: [facilitator]\n"
        "  Caddyfile: [proxy]\n"
    )

    cfg = load_config(str(path), overrides={"deploy_dir": str(tmp_path), "source_dir": None})

    assert cfg.deploy_dir == str(tmp_path)
    assert cfg.health_url == "http://127.0.0.1:9090/health"
    assert cfg.health_max_retries == 0
    assert cfg.tracked_files == {"config.toml": ["facilitator"], "Caddyfile": ["proxy"]}


def test_editor_falls_back_to_env(monkeypatch):
    monkeypatch.setenv("EDITOR", "vi")
    assert DeployConfig().editor == "vi"
    assert DeployConfig(raw={"editor": "nano -w"}).editor == "nano -w"


def test_missing_explicit_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_rejects_non_mapping(tmp_path):
    path = tmp_path / "deploy.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_rejects_non_yaml(tmp_path):
    path = tmp_path / "deploy.json"
    path.write_text("{}")
    with pytest.raises(ValueError):
        load_config(str(path))
