"""Unit tests for the grim command."""

from __future__ import annotations

import typing as typ

import pytest

from grim.cli import main

if typ.TYPE_CHECKING:
    from pathlib import Path

    from tests.conftest import WriteConfigFn


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the CLI from reconfiguring the process-wide logger."""
    monkeypatch.setattr("grim.cli.configure_logging", lambda level: (level, False))


def test_check_config_prints_resolved_settings(
    config_root: Path,
    write_config: WriteConfigFn,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """check-config prints the effective configuration without secrets."""
    write_config({"GrimQueueName": "builds", "AWSSecret": "hunter2"})

    code = main(["--config-root", str(config_root), "check-config"])

    out = capsys.readouterr().out
    assert code == 0
    assert "queue_name='builds'" in out
    assert "hunter2" not in out


def test_check_config_for_repository(
    config_root: Path,
    write_config: WriteConfigFn,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Repository overlays are applied when owner and repo are given."""
    write_config({})
    write_config({"Timeout": 42}, owner="acme", repo="widget")

    code = main(
        [
            "--config-root",
            str(config_root),
            "check-config",
            "--owner",
            "acme",
            "--repo",
            "widget",
        ]
    )

    assert code == 0
    assert "timeout=42" in capsys.readouterr().out


def test_check_config_requires_owner_and_repo_together(config_root: Path) -> None:
    """Passing only one of --owner and --repo is a usage error."""
    args = ["--config-root", str(config_root), "check-config", "--owner", "acme"]
    assert main(args) == 2


def test_build_without_configuration_fails(
    config_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """A missing global config.json is reported with exit code 1."""
    code = main(["--config-root", str(config_root), "build", "acme", "widget", "main"])

    assert code == 1
    assert "grim build failed" in capsys.readouterr().out


def test_prepare_queue_reports_identity(
    config_root: Path,
    write_config: WriteConfigFn,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """prepare-queue declares the queue on the broker and prints it."""
    write_config({"GrimQueueName": "builds", "GrimServerID": "ci-1"})

    code = main(["--config-root", str(config_root), "prepare-queue"])

    assert code == 0
    assert "queue builds ready (server id ci-1)" in capsys.readouterr().out
