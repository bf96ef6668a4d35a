"""Tests covering the entry point helpers."""

from __future__ import annotations

from pathlib import Path

from sitesync import app
from sitesync.app import _resolve_log_level, _resolve_ui_verbose, build_router, execute_cli_command
from sitesync.configuration import ConfigurationBundle


def _bundle(merged: dict | None = None) -> ConfigurationBundle:
    return ConfigurationBundle(
        home_dir=Path("/tmp/sitesync-home"),
        status="ready",
        merged=merged or {},
    )


def test_resolve_ui_verbose_defaults_to_true(monkeypatch):
    monkeypatch.delenv("SITESYNC_UI_VERBOSE", raising=False)
    bundle = _bundle()
    assert _resolve_ui_verbose(bundle) is True


def test_resolve_ui_verbose_reads_config(monkeypatch):
    monkeypatch.delenv("SITESYNC_UI_VERBOSE", raising=False)
    bundle = _bundle({"ui": {"verbose": False}})
    assert _resolve_ui_verbose(bundle) is False


def test_resolve_ui_verbose_env_override(monkeypatch):
    bundle = _bundle({"ui": {"verbose": True}})
    monkeypatch.setenv("SITESYNC_UI_VERBOSE", "0")
    assert _resolve_ui_verbose(bundle) is False


def test_log_level_env_wins_over_config(monkeypatch):
    bundle = _bundle({"logging": {"level": "info"}})
    monkeypatch.delenv("SITESYNC_LOG_LEVEL", raising=False)
    assert _resolve_log_level(bundle) == "INFO"

    monkeypatch.setenv("SITESYNC_LOG_LEVEL", "debug")
    assert _resolve_log_level(bundle) == "DEBUG"


def test_build_router_registers_every_command():
    router = build_router(_bundle())

    assert set(router.command_names) == {
        "config", "create", "deploy", "help", "manifest", "site", "sites", "wait",
    }


def test_execute_cli_command_strips_slash(capsys):
    router = build_router(_bundle())

    output = execute_cli_command("/nope now", router)

    assert output.startswith("[router] error: unknown command '/nope'")
    assert "[router] error" in capsys.readouterr().out


def test_main_one_shot_exit_codes(tmp_path: Path, monkeypatch):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("SITESYNC_HOME", str(home_dir))
    monkeypatch.delenv("SITESYNC_LOG_LEVEL", raising=False)

    site_dir = tmp_path / "public"
    site_dir.mkdir()
    (site_dir / "index.html").write_text("<h1>hi</h1>", encoding="utf-8")

    assert app.main(["manifest", str(site_dir)]) == 0
    assert app.main(["manifest", str(tmp_path / "missing")]) == 1
    assert app.main(["wait"]) == 1


def test_build_router_starts_without_metadata():
    router = build_router(_bundle())

    assert router.metadata == {}
