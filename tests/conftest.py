"""Shared test fixtures for authcapture.

Provides isolated configuration environments, a credential store rooted in
``tmp_path``, output/logging reset between tests, and a CLI runner. These
fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest
from rich.logging import RichHandler

from authcapture.auth.credential_store import CredentialStore
from authcapture.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and drop CLI log handlers after every test.

    Both hold references to the streams that were current when the CLI
    callback ran. Under ``CliRunner`` those streams are closed once the
    invocation finishes.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("authcapture")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Clears all ``AUTHCAPTURE_*`` variables, points ``XDG_DATA_HOME`` into
    ``tmp_path`` and changes the working directory to ``tmp_path``.

    Returns:
        The tmp_path root directory (also the project root).
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "AUTHCAPTURE_AUTH_DIR",
        "AUTHCAPTURE_LANG",
        "AUTHCAPTURE_MODE",
        "AUTHCAPTURE_TARGET_INDEX",
        "AUTHCAPTURE_BROWSER_PATH",
        "AUTHCAPTURE_TARGET_URL",
        "AUTHCAPTURE_RELOAD_URL",
        "AUTHCAPTURE_HEADLESS",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Credential store
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_dir(tmp_path: Path) -> Path:
    """The credential store directory (``<tmp>/configs/auth``), not yet created."""
    return tmp_path / "configs" / "auth"


@pytest.fixture
def store(auth_dir: Path) -> CredentialStore:
    return CredentialStore(auth_dir)


@pytest.fixture
def write_auth(auth_dir: Path):
    """Return a helper that writes a credential file directly, bypassing the store."""

    def _write(name: str, data: dict[str, Any] | None = None) -> Path:
        auth_dir.mkdir(parents=True, exist_ok=True)
        path = auth_dir / name
        payload = data if data is not None else {"cookies": [], "origins": []}
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the duration of a test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
