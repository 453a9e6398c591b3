"""Numbered credential store on local disk.

Each account index maps to one file, ``<auth_dir>/auth-<index>.json``, holding
a serialised :class:`~authcapture.models.CredentialArtifact`. Indices are
non-negative base-10 integers with no fixed width.

Files are written atomically via :func:`tempfile.NamedTemporaryFile` and
``os.replace`` with ``0o600`` permissions. Readers never lock: they rely on
rename atomicity, so they see either the previous file or the new one, never
a partial write. Temporary files are dot-prefixed and end in ``.tmp``, so
they never match the credential file pattern.

Discovery (:func:`find_latest`) is a pure function over a list of file names;
:meth:`CredentialStore.find_latest` feeds it a directory snapshot.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from authcapture.exceptions import CredentialFormatError, CredentialNotFoundError
from authcapture.models import CredentialArtifact, CredentialRef

AUTH_FILE_PATTERN = re.compile(r"auth-([0-9]+)\.json", re.IGNORECASE | re.ASCII)
"""File names accepted as credential files (whole-name match). The group captures the index."""


def auth_filename(index: int) -> str:
    """Return the credential file name for *index* (``auth-<index>.json``)."""
    return f"auth-{index}.json"


def parse_auth_index(name: str) -> Optional[int]:
    """Return the index embedded in a credential file name, or ``None``.

    Example::

        >>> parse_auth_index("auth-12.json")
        12
        >>> parse_auth_index("auth-abc.json") is None
        True
    """
    match = AUTH_FILE_PATTERN.fullmatch(name)
    if match is None:
        return None
    return int(match.group(1), 10)


def find_latest(names: Iterable[str]) -> Optional[CredentialRef]:
    """Return the credential file with the highest index among *names*.

    Names that do not match :data:`AUTH_FILE_PATTERN` are ignored. The result
    does not depend on the order of *names*; equal indices (``auth-7.json``
    and ``auth-007.json``) are broken by file name.

    Returns:
        A :class:`~authcapture.models.CredentialRef`, or ``None`` when no
        valid name is present.
    """
    candidates: list[tuple[int, str]] = []
    for name in names:
        index = parse_auth_index(name)
        if index is not None:
            candidates.append((index, name))
    if not candidates:
        return None
    index, name = max(candidates)
    return CredentialRef(index=index, file=name)


def atomic_write_json(path: Path, payload: Any) -> None:
    """Serialise *payload* to *path* atomically with ``0o600`` permissions.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename. On any failure (including
    ``KeyboardInterrupt``) the temporary file is removed and *path* is left
    exactly as it was.

    Raises:
        OSError: If the file cannot be written (permissions, disk full, etc.).
    """
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        # Set restrictive permissions before writing content
        os.chmod(tmp_path, 0o600)
        fd.write(text)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


class CredentialStore:
    """Read/write numbered credential files in one directory.

    The store never deletes credential files. The directory is created
    lazily on first write; every read tolerates its absence.

    Args:
        directory: The directory holding ``auth-<index>.json`` files.

    Example::

        store = CredentialStore(Path("configs/auth"))
        store.save(0, CredentialArtifact(cookies=[...], origins=[...]))
        latest = store.find_latest()
        assert latest is not None and latest.file == "auth-0.json"
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        """The directory this store reads and writes."""
        return self._directory

    def path_for(self, index: int) -> Path:
        """The filesystem path of the credential file for *index*."""
        return self._directory / auth_filename(index)

    def exists(self, index: int) -> bool:
        """Return ``True`` if a credential file exists for *index*."""
        return self.path_for(index).is_file()

    def load(self, index: int) -> CredentialArtifact:
        """Load the credential artifact stored for *index*.

        Raises:
            CredentialNotFoundError: If no file exists for *index*.
            CredentialFormatError: If the file is not a valid JSON record.
        """
        return self._read(self.path_for(index))

    def load_file(self, name: str) -> CredentialArtifact:
        """Load a credential by its file name, as listed by :meth:`list_credentials`.

        Raises:
            CredentialNotFoundError: If the file does not exist.
            CredentialFormatError: If the file is not a valid JSON record.
        """
        return self._read(self._directory / name)

    def _read(self, path: Path) -> CredentialArtifact:
        if not path.is_file():
            raise CredentialNotFoundError(f"Auth file not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CredentialArtifact.model_validate(data)
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            raise CredentialFormatError(f"Invalid auth file {path}: {exc}") from exc

    def save(self, index: int, artifact: CredentialArtifact) -> Path:
        """Persist *artifact* as the credential file for *index*, atomically.

        Returns:
            The path written.
        """
        path = self.path_for(index)
        atomic_write_json(path, artifact.model_dump(mode="json"))
        return path

    def file_names(self) -> list[str]:
        """Snapshot of the file names in the store directory.

        Returns an empty list when the directory does not exist.
        """
        try:
            return [entry.name for entry in self._directory.iterdir() if entry.is_file()]
        except (FileNotFoundError, NotADirectoryError):
            return []

    def list_credentials(self) -> list[CredentialRef]:
        """Return every validly-named credential file, sorted by index."""
        refs = []
        for name in self.file_names():
            index = parse_auth_index(name)
            if index is not None:
                refs.append(CredentialRef(index=index, file=name))
        return sorted(refs, key=lambda ref: (ref.index, ref.file))

    def find_latest(self) -> Optional[CredentialRef]:
        """Return the highest-indexed credential file, or ``None`` if there is none."""
        return find_latest(self.file_names())

    def next_index(self) -> int:
        """Return the index a newly created credential should use."""
        latest = self.find_latest()
        return 0 if latest is None else latest.index + 1
