"""Capture commands -- run a credential capture in the foreground.

Provides the ``authcapture capture`` sub-command group. Each command starts a
:class:`~authcapture.supervisor.CaptureSupervisor` run, waits for the operator
to press Enter (which sends the continuation signal), then waits for the
capture process to exit and prints the final status snapshot.

Typical workflow::

    authcapture capture create       # log in, press Enter, auth-<n>.json written
    authcapture capture relogin 3    # refresh auth-3.json
"""

from __future__ import annotations

import sys
import threading
from typing import Optional

import typer

from authcapture.commands import config_from_context
from authcapture.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE
from authcapture.models import CaptureMode, ResultCode
from authcapture.output import error, format_response, info, success, suggest, warning
from authcapture.supervisor import CaptureSupervisor


capture_app = typer.Typer(no_args_is_help=True)

_CANCEL_WAIT_SECONDS = 10.0
_POLL_SECONDS = 0.2


@capture_app.command("create")
def capture_create(ctx: typer.Context) -> None:
    """Capture a new account session into the next free auth-<n>.json.

    Example::

        authcapture capture create
    """
    _run_capture(ctx, CaptureMode.CREATE, None)


@capture_app.command("relogin")
def capture_relogin(
    ctx: typer.Context,
    index: int = typer.Argument(help="Account index whose credential file to refresh."),
) -> None:
    """Refresh the session stored in auth-<INDEX>.json.

    Example::

        authcapture capture relogin 3
    """
    _run_capture(ctx, CaptureMode.RELOGIN, index)


def _wait_for_operator(supervisor: CaptureSupervisor) -> Optional[bool]:
    """Block until Enter is pressed or the capture process exits.

    Returns:
        ``True`` when a line was entered, ``False`` when input reached EOF,
        ``None`` when the process exited first.
    """
    entered = threading.Event()
    line: list[str] = []

    def _read() -> None:
        try:
            line.append(sys.stdin.readline())
        except (OSError, ValueError):
            line.append("")
        entered.set()

    threading.Thread(target=_read, name="capture-operator-input", daemon=True).start()
    while not entered.is_set():
        if supervisor.wait(timeout=_POLL_SECONDS):
            return None
    return line[0] != ""


def _run_capture(ctx: typer.Context, mode: CaptureMode, index: Optional[int]) -> None:
    config = config_from_context(ctx)
    supervisor = CaptureSupervisor.from_config(config)

    result = supervisor.start(mode, index)
    if not result.ok:
        detail = f": {result.error}" if result.error else ""
        error(f"{result.message.value}{detail}")
        code = EXIT_INVALID_USAGE if result.status == 400 else EXIT_GENERIC_FAILURE
        raise typer.Exit(code=code)

    try:
        info("Complete the login in the browser window, then press Enter to save the session.")
        entered = _wait_for_operator(supervisor)
        if entered is False:
            info("Input closed, cancelling capture.")
            supervisor.cancel()
        elif entered:
            sent = supervisor.continue_()
            if not sent.ok and sent.message != ResultCode.NOT_RUNNING:
                warning(f"{sent.message.value}: {sent.error}")

        if supervisor.is_running:
            info("Waiting for the capture process to finish...")
        supervisor.wait()
    finally:
        if supervisor.is_running:
            supervisor.cancel()
            supervisor.wait(timeout=_CANCEL_WAIT_SECONDS)

    status = supervisor.status()
    format_response(status.model_dump(mode="json"))

    if status.exit_code != 0:
        error(status.error or "Capture failed.")
        suggest("Check the capture output above, then retry the same command.")
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)

    if status.last_auth_file:
        success(f"Saved {status.last_auth_file}.")
