"""In-process auth source -- routing table from account index to credential file.

:class:`AuthSource` is the reload sink used when the consuming server lives
in the same process (or when the CLI reloads locally). It keeps a mapping
of usable account indices to credential paths and rebuilds it from the
:class:`~authcapture.auth.credential_store.CredentialStore` on every reload.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from authcapture.auth.base import ReloadSink
from authcapture.auth.credential_store import CredentialStore
from authcapture.exceptions import CredentialFormatError, CredentialNotFoundError
from authcapture.models import CredentialArtifact

logger = logging.getLogger(__name__)


class AuthSource(ReloadSink):
    """Registry of usable credentials keyed by account index.

    Files that cannot be parsed are left out of the table and logged as
    warnings, so one corrupt file never hides the others. When two files
    share an index (``auth-7.json``, ``auth-007.json``) the one
    :func:`~authcapture.auth.credential_store.find_latest` would pick wins.

    Args:
        store: The credential store to scan.

    Example::

        source = AuthSource(CredentialStore(Path("configs/auth")))
        source.reload_auth_sources()
        artifact = source.get(source.available_indices[0])
    """

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._sources: dict[int, Path] = {}

    @property
    def available_indices(self) -> list[int]:
        """Sorted indices present after the last reload."""
        with self._lock:
            return sorted(self._sources)

    def reload(self) -> None:
        self.reload_auth_sources()

    def reload_auth_sources(self) -> list[int]:
        """Rebuild the routing table from the store.

        Returns:
            The sorted list of usable account indices.
        """
        sources: dict[int, Path] = {}
        # Highest file name first per index, the same tie-break as find_latest().
        for ref in reversed(self._store.list_credentials()):
            if ref.index in sources:
                logger.warning(
                    "Duplicate auth index %d (%s), keeping %s",
                    ref.index,
                    ref.file,
                    sources[ref.index].name,
                )
                continue
            try:
                self._store.load_file(ref.file)
            except (CredentialNotFoundError, CredentialFormatError) as exc:
                logger.warning("Skipping auth file %s: %s", ref.file, exc)
                continue
            sources[ref.index] = self._store.directory / ref.file

        with self._lock:
            self._sources = sources
        logger.info(
            "Reloaded auth sources: %d available %s",
            len(sources),
            sorted(sources),
        )
        return sorted(sources)

    def get(self, index: int) -> CredentialArtifact:
        """Load the credential for *index* if it is in the routing table.

        Raises:
            CredentialNotFoundError: If *index* was not available at the
                last reload, or its file has since disappeared.
        """
        with self._lock:
            path = self._sources.get(index)
        if path is None:
            raise CredentialNotFoundError(f"No auth source for index {index}")
        return self._store.load_file(path.name)
