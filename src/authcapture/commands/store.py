"""Store commands -- inspect the credential store and trigger reloads.

Provides the ``authcapture store`` sub-command group::

    authcapture store list      # indices, cookie and origin counts
    authcapture store latest    # file name of the highest index
    authcapture store reload    # notify the configured reload sink
"""

from __future__ import annotations

from typing import Optional

import typer

from authcapture.auth import AuthSource, HttpReloadSink, create_reload_sink
from authcapture.auth.credential_store import CredentialStore
from authcapture.commands import config_from_context
from authcapture.exceptions import (
    AuthCaptureError,
    CredentialFormatError,
    CredentialNotFoundError,
)
from authcapture.exit_codes import EXIT_CREDENTIAL_NOT_FOUND
from authcapture.output import error, info, print_data, print_table, success, suggest


store_app = typer.Typer(no_args_is_help=True)


@store_app.command("list")
def store_list(ctx: typer.Context) -> None:
    """List credential files with their cookie and origin counts."""
    config = config_from_context(ctx)
    store = CredentialStore(config.auth_dir)

    refs = store.list_credentials()
    if not refs:
        info(f"No credential files in {store.directory}.")
        suggest("Create one: authcapture capture create")
        return

    rows: list[list[str]] = []
    for ref in refs:
        try:
            artifact = store.load_file(ref.file)
        except (CredentialFormatError, CredentialNotFoundError):
            rows.append([str(ref.index), ref.file, "invalid", "invalid"])
            continue
        rows.append(
            [str(ref.index), ref.file, str(len(artifact.cookies)), str(len(artifact.origins))]
        )
    print_table(["index", "file", "cookies", "origins"], rows, title="Credential store")


@store_app.command("latest")
def store_latest(ctx: typer.Context) -> None:
    """Print the file name of the highest-indexed credential."""
    config = config_from_context(ctx)
    store = CredentialStore(config.auth_dir)

    latest = store.find_latest()
    if latest is None:
        error(f"No credential files in {store.directory}.")
        raise typer.Exit(code=EXIT_CREDENTIAL_NOT_FOUND)
    print_data(latest.file)


@store_app.command("reload")
def store_reload(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(
        None, "--url", help="Reload endpoint of a running server (overrides config)."
    ),
) -> None:
    """Notify the reload sink that the credential store changed.

    Without a reload URL the store is re-scanned locally and the usable
    indices are reported.
    """
    config = config_from_context(ctx)
    store = CredentialStore(config.auth_dir)
    sink = HttpReloadSink(url) if url else create_reload_sink(config, store)

    try:
        if isinstance(sink, AuthSource):
            indices = sink.reload_auth_sources()
            success(f"{len(indices)} auth source(s) available: {indices}")
        else:
            sink.reload()
            success("Reload requested.")
    except AuthCaptureError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
