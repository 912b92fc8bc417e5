"""CLI readiness and argument handling."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

_CREDENTIAL_NAMES = (
    "APCA_API_KEY_ID",
    "APCA_API_SECRET_KEY",
    "ALPACA_API_KEY_ID",
    "ALPACA_API_SECRET_KEY",
    "ALPACA_KEY_ID",
    "ALPACA_SECRET_KEY",
)


def _base_env() -> dict[str, str]:
    env = {k: v for k, v in os.environ.items() if k not in _CREDENTIAL_NAMES and not k.startswith("OPTIONSCOUT_")}
    env["LOG_LEVEL"] = "WARNING"
    return env


def _run(*args: str, env: dict[str, str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "cli.main", *args],
        env=env,
        cwd=ROOT,
        capture_output=True,
        text=True,
    )


def test_cli_check_ready() -> None:
    base_env = _base_env()

    missing = _run("check", env=base_env)
    assert missing.returncode == 1
    assert "NOT READY" in missing.stdout

    ready_env = dict(base_env)
    ready_env["APCA_API_KEY_ID"] = "abc"
    ready_env["APCA_API_SECRET_KEY"] = "def"
    ready = _run("check", env=ready_env)
    assert ready.returncode == 0
    assert "READY" in ready.stdout


def test_cli_run_without_credentials_is_a_config_error() -> None:
    result = _run("run", "--symbols", "AAPL", env=_base_env())
    assert result.returncode == 2
    assert "Config error" in result.stdout


def test_cli_run_rejects_bad_scoring_file(tmp_path) -> None:
    bad = tmp_path / "scoring.yaml"
    bad.write_text("- not\n- a mapping\n", encoding="utf-8")
    env = _base_env()
    env["APCA_API_KEY_ID"] = "abc"
    env["APCA_API_SECRET_KEY"] = "def"
    result = _run("run", "--config", str(bad), env=env)
    assert result.returncode == 2


def test_cli_sentiment_with_rule_backend() -> None:
    env = _base_env()
    env["OPTIONSCOUT_SENTIMENT_BACKEND"] = "rule"
    result = _run("sentiment", "Shares surge on record profit", "Regulator opens fraud probe", env=env)
    assert result.returncode == 0
    assert "positive" in result.stdout
    assert "negative" in result.stdout
