"""Tests for the layered configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from sitesync import configuration


def _prepare_repo_defaults(tmp_path: Path, content: str = "api:\n  timeout: 10\n") -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "10-default.yml").write_text(content, encoding="utf-8")
    return config_dir


def test_resolve_home_dir_uses_env_expansion(tmp_path: Path):
    env = {"SITESYNC_HOME": str(tmp_path / "home")}
    path = configuration.resolve_home_dir(env=env)
    assert path == tmp_path / "home"


def test_load_runtime_configuration_merges_repo_and_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path, content="deploy:\n  poll_interval: 2\n  ready_timeout: 60\n")
    home_dir = tmp_path / "home"
    overrides_dir = home_dir / "config"
    overrides_dir.mkdir(parents=True)
    (overrides_dir / "20-overrides.yml").write_text(
        "deploy:\n  ready_timeout: 120\n  wait: true\n",
        encoding="utf-8",
    )

    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(home_dir)

    assert bundle.status == "ready"
    assert bundle.merged["deploy"]["poll_interval"] == 2
    assert bundle.merged["deploy"]["ready_timeout"] == 120
    assert bundle.merged["deploy"]["wait"] is True
    assert len(bundle.files_loaded) == 2


def test_load_runtime_configuration_fills_schema_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(home_dir)

    assert bundle.section("api")["base_url"] == configuration.DEFAULT_BASE_URL
    assert bundle.section("api")["timeout"] == 10
    assert bundle.section("deploy")["ready_state"] == "current"
    assert bundle.section("nope") == {}


def test_load_runtime_configuration_reports_missing_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    missing_home = tmp_path / "missing"
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(missing_home)

    assert bundle.status == "missing"
    assert any(diag.level == "warning" for diag in bundle.diagnostics)
    assert bundle.merged["api"]["timeout"] == 10


def test_load_runtime_configuration_handles_bad_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    home_dir = tmp_path / "home"
    overrides_dir = home_dir / "config"
    overrides_dir.mkdir(parents=True)
    (overrides_dir / "broken.yml").write_text("deploy: [\n", encoding="utf-8")

    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(home_dir)

    assert bundle.status == "invalid"
    assert any("Failed to parse" in diag.message for diag in bundle.diagnostics)


def test_type_errors_fall_back_to_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(
        tmp_path,
        content="deploy:\n  ready_timeout: true\n  upload_concurrency: four\n",
    )
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(home_dir)

    assert bundle.status == "invalid"
    assert bundle.merged["deploy"]["ready_timeout"] == 300
    assert bundle.merged["deploy"]["upload_concurrency"] == 1
    messages = [diag.message for diag in bundle.diagnostics]
    assert "'config.deploy.ready_timeout' must be of type int, float." in messages


def test_unknown_keys_are_warnings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path, content="deploy:\n  turbo: true\n")
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(home_dir)

    assert bundle.status == "ready"
    assert any(
        diag.level == "warning" and "config.deploy.turbo" in diag.message
        for diag in bundle.diagnostics
    )


def test_shipped_defaults_validate_cleanly(tmp_path: Path):
    home_dir = tmp_path / "home"
    home_dir.mkdir()

    bundle = configuration.load_runtime_configuration(home_dir)

    assert bundle.status == "ready"
    assert not [diag for diag in bundle.diagnostics if diag.level != "info"]


def test_non_positive_numbers_fall_back_to_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(
        tmp_path,
        content="deploy:\n  poll_interval: 0\n  upload_concurrency: -2\n  ready_timeout: 45\n",
    )
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    bundle = configuration.load_runtime_configuration(home_dir)

    assert bundle.status == "invalid"
    assert bundle.merged["deploy"]["poll_interval"] == 1.0
    assert bundle.merged["deploy"]["upload_concurrency"] == 1
    assert bundle.merged["deploy"]["ready_timeout"] == 45
    messages = [diag.message for diag in bundle.diagnostics]
    assert "'config.deploy.poll_interval' must be greater than zero." in messages


def test_schema_defaults_are_not_shared(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    repo_dir = _prepare_repo_defaults(tmp_path)
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(configuration, "DEFAULT_CONFIG_DIR", repo_dir)

    first = configuration.load_runtime_configuration(home_dir)
    first.merged["api"]["headers"]["X-Test"] = "1"
    second = configuration.load_runtime_configuration(home_dir)

    assert second.merged["api"]["headers"] == {}
