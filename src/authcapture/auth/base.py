"""Abstract base class for reload sinks.

A reload sink is whatever consumes the credential store: after every capture
process exit, the supervisor calls :meth:`ReloadSink.reload` so the consumer
re-reads the store and rebuilds its routing by account index.

To implement a new sink, subclass :class:`ReloadSink` and implement
:meth:`~ReloadSink.reload`. Raising from ``reload`` is allowed; the
supervisor catches and logs the failure.

See Also:
    :class:`~authcapture.auth.source.AuthSource` -- in-process sink.
    :class:`~authcapture.auth.remote.HttpReloadSink` -- notifies a running server.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ReloadSink(ABC):
    """Consumer notified after a capture run finishes, successfully or not."""

    @abstractmethod
    def reload(self) -> None:
        """Re-scan the credential store and rebuild in-memory routing.

        Called synchronously; the return value is ignored.

        Raises:
            Exception: Any failure. Callers isolate and log it.
        """
        ...
