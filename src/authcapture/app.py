"""Root ``authcapture`` command and console-script entry point.

``capture`` runs a credential capture in the foreground; ``store`` inspects
the credential directory and triggers reloads. Global flags choose the
credential directory, the message language of the capture process, and how
output is rendered.

:func:`main` maps :class:`~authcapture.exceptions.AuthCaptureError` to its
exit code. Anything else leaves a traceback in
``<data dir>/logs/crash-<timestamp>.log``.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from authcapture import __version__
from authcapture.commands.capture import capture_app
from authcapture.commands.store import store_app
from authcapture.config import get_data_dir
from authcapture.exceptions import AuthCaptureError
from authcapture.exit_codes import EXIT_GENERIC_FAILURE
from authcapture.output import (
    OutputFormat,
    OutputManager,
    configure_logging,
    error,
    set_output,
)

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="authcapture",
    help="Capture and refresh browser sessions for numbered accounts.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.add_typer(capture_app, name="capture", help="Run a credential capture.")
app.add_typer(store_app, name="store", help="Inspect the credential store.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"authcapture {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    auth_dir: Optional[str] = typer.Option(
        None, "--auth-dir", help="Credential store directory."
    ),
    lang: Optional[str] = typer.Option(
        None, "--lang", help="Language of capture process messages (zh, en)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Render data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Render data as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data, warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs."),
) -> None:
    """Capture and refresh browser sessions for numbered accounts."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj.update(auth_dir=auth_dir, lang=lang, verbose=verbose)


def _exit_interrupted(signum: int, frame: Any) -> None:  # noqa: ANN401
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> str:
    """Save the current traceback under the data directory and return its path."""
    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return str(log_path)


def main() -> None:
    """Console-script entry point. Always exits via :class:`SystemExit`."""
    signal.signal(signal.SIGINT, _exit_interrupted)
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except AuthCaptureError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
