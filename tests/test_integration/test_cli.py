"""End-to-end tests for the ``authcapture`` command line.

Commands run through the real root app with :class:`typer.testing.CliRunner`.
The capture tests spawn the real capture process, relying on it failing fast
(missing credential file) before any browser would be needed.
"""

from __future__ import annotations

import io
import json
import sys
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from authcapture import __version__
from authcapture.app import app, main
from authcapture.commands.capture import _wait_for_operator
from authcapture.exceptions import CredentialNotFoundError


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestRootApp:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert "capture" in result.output
        assert "store" in result.output

    def test_invalid_project_config(self, runner: CliRunner, isolated_config: Path) -> None:
        (isolated_config / "authcapture.yaml").write_text("- not a mapping\n", encoding="utf-8")
        result = runner.invoke(app, ["store", "list"])
        assert result.exit_code == 1
        assert "mapping" in result.output


class TestStoreCommands:
    def test_list_empty(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["store", "list"])
        assert result.exit_code == 0
        assert "No credential files" in result.output

    def test_list(self, runner: CliRunner, isolated_config: Path, auth_dir: Path, write_auth) -> None:
        write_auth("auth-0.json", {"cookies": [{"name": "a"}, {"name": "b"}], "origins": []})
        write_auth("auth-2.json")
        (auth_dir / "auth-5.json").write_text("{oops", encoding="utf-8")

        result = runner.invoke(app, ["--plain", "store", "list"])

        assert result.exit_code == 0
        assert "0\tauth-0.json\t2\t0" in result.stdout
        assert "2\tauth-2.json\t0\t0" in result.stdout
        assert "5\tauth-5.json\tinvalid\tinvalid" in result.stdout

    def test_list_json(self, runner: CliRunner, isolated_config: Path, write_auth) -> None:
        write_auth("auth-1.json")
        result = runner.invoke(app, ["--json", "store", "list"])
        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert records == [{"index": "1", "file": "auth-1.json", "cookies": "0", "origins": "0"}]

    def test_latest(self, runner: CliRunner, isolated_config: Path, write_auth) -> None:
        for name in ["auth-2.json", "auth-10.json", "auth-9.json", "auth-x.json"]:
            write_auth(name)
        result = runner.invoke(app, ["store", "latest"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "auth-10.json"

    def test_latest_empty(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["store", "latest"])
        assert result.exit_code == 3

    def test_auth_dir_option(self, runner: CliRunner, isolated_config: Path) -> None:
        other = isolated_config / "other"
        other.mkdir()
        (other / "auth-4.json").write_text("{}", encoding="utf-8")
        result = runner.invoke(app, ["--auth-dir", str(other), "store", "latest"])
        assert result.stdout.strip() == "auth-4.json"

    def test_reload_local(self, runner: CliRunner, isolated_config: Path, write_auth) -> None:
        write_auth("auth-0.json")
        write_auth("auth-3.json")
        result = runner.invoke(app, ["store", "reload"])
        assert result.exit_code == 0
        assert "2 auth source(s) available: [0, 3]" in result.output

    def test_reload_remote(self, runner: CliRunner, isolated_config: Path) -> None:
        response = MagicMock(spec=httpx.Response)
        response.raise_for_status.return_value = None
        with patch("authcapture.auth.remote.httpx.post", return_value=response) as post:
            result = runner.invoke(app, ["store", "reload", "--url", "http://localhost:7860/reload"])
        assert result.exit_code == 0
        assert post.call_args[0][0] == "http://localhost:7860/reload"
        assert "Reload requested" in result.output

    def test_reload_remote_failure(self, runner: CliRunner, isolated_config: Path) -> None:
        with patch(
            "authcapture.auth.remote.httpx.post",
            side_effect=httpx.ConnectError("connection refused"),
        ):
            result = runner.invoke(app, ["store", "reload", "--url", "http://localhost:1/reload"])
        assert result.exit_code == 6
        assert "connection refused" in result.output


class TestCaptureCommands:
    def test_relogin_invalid_index(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["capture", "relogin", "abc"])
        assert result.exit_code == 2

    def test_relogin_negative_index(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(app, ["capture", "relogin", "--", "-1"])
        assert result.exit_code == 2
        assert "errorInvalidIndex" in result.output

    def test_relogin_missing_credential(self, runner: CliRunner, isolated_config: Path) -> None:
        result = runner.invoke(
            app, ["--json", "--lang", "en", "capture", "relogin", "3"], input="\n"
        )

        assert result.exit_code == 1
        assert '"exit_code": 3' in result.stdout
        assert '"last_auth_file": "auth-3.json"' in result.stdout
        assert "[SetupAuth]" in result.output


class _BlockingStdin:
    """Stands in for a terminal where the operator never presses Enter."""

    def __init__(self) -> None:
        self.release = threading.Event()

    def readline(self) -> str:
        self.release.wait(timeout=30)
        return ""


class TestWaitForOperator:
    def test_returns_when_process_exits_first(self, monkeypatch: pytest.MonkeyPatch) -> None:
        stdin = _BlockingStdin()
        monkeypatch.setattr(sys, "stdin", stdin)
        supervisor = MagicMock()
        supervisor.wait.return_value = True
        try:
            assert _wait_for_operator(supervisor) is None
        finally:
            stdin.release.set()

    def test_enter_pressed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "stdin", io.StringIO("\n"))
        supervisor = MagicMock()
        supervisor.wait.return_value = False
        assert _wait_for_operator(supervisor) is True

    def test_input_closed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "stdin", io.StringIO(""))
        supervisor = MagicMock()
        supervisor.wait.return_value = False
        assert _wait_for_operator(supervisor) is False


class TestMainEntryPoint:
    @pytest.fixture(autouse=True)
    def _no_signal_handler(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("authcapture.app.signal.signal", lambda *args: None)

    def test_mapped_error_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _raise() -> None:
            raise CredentialNotFoundError("Auth file not found: auth-3.json")

        monkeypatch.setattr("authcapture.app.app", _raise)
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 3

    def test_unexpected_error_writes_crash_log(
        self, monkeypatch: pytest.MonkeyPatch, isolated_config: Path
    ) -> None:
        monkeypatch.setattr("authcapture.config._is_xdg_platform", lambda: True)

        def _raise() -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr("authcapture.app.app", _raise)
        with pytest.raises(SystemExit) as excinfo:
            main()

        assert excinfo.value.code == 1
        logs = list((isolated_config / "data" / "authcapture" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: boom" in logs[0].read_text(encoding="utf-8")
