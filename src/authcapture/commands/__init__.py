"""Built-in CLI command groups for authcapture.

Each sub-module exposes a Typer sub-application registered on the root app
in :mod:`authcapture.app`:

- :mod:`~authcapture.commands.capture` -- run a capture in the foreground.
- :mod:`~authcapture.commands.store` -- inspect and reload the credential store.
"""

from __future__ import annotations

import typer

from authcapture.config import resolve_config
from authcapture.exceptions import AuthCaptureError
from authcapture.models import CaptureConfig
from authcapture.output import error


def config_from_context(ctx: typer.Context) -> CaptureConfig:
    """Resolve the configuration using the global CLI options stored on *ctx*.

    Raises:
        typer.Exit: With the error's exit code if the configuration is invalid.
    """
    obj = ctx.obj or {}
    try:
        return resolve_config(cli_auth_dir=obj.get("auth_dir"), cli_lang=obj.get("lang"))
    except AuthCaptureError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
