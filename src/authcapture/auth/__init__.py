"""Credential storage and reload sinks.

The main entry points are:

- :class:`CredentialStore` -- numbered ``auth-<index>.json`` files with
  atomic writes and latest-index discovery.
- :class:`ReloadSink` -- abstract consumer notified after a capture run.
- :class:`AuthSource` -- in-process sink that keeps an index routing table.
- :class:`HttpReloadSink` -- sink that notifies a running server over HTTP.
- :func:`create_reload_sink` -- picks the sink for a configuration.
"""

from __future__ import annotations

from authcapture.auth.base import ReloadSink
from authcapture.auth.credential_store import (
    CredentialStore,
    atomic_write_json,
    auth_filename,
    find_latest,
    parse_auth_index,
)
from authcapture.auth.remote import HttpReloadSink
from authcapture.auth.source import AuthSource
from authcapture.models import CaptureConfig


def create_reload_sink(config: CaptureConfig, store: CredentialStore) -> ReloadSink:
    """Return an :class:`HttpReloadSink` when ``reload_url`` is configured, else an :class:`AuthSource`."""
    if config.reload_url:
        return HttpReloadSink(config.reload_url)
    return AuthSource(store)


__all__ = [
    "AuthSource",
    "CredentialStore",
    "HttpReloadSink",
    "ReloadSink",
    "atomic_write_json",
    "auth_filename",
    "create_reload_sink",
    "find_latest",
    "parse_auth_index",
]
