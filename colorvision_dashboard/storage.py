"""
Artifact storage abstraction for uploaded fundus images and ERG files.

Artifacts are addressed by URL: ``put`` returns the URL that is stored on the
metadata row, and ``delete`` takes that same URL back.

Supported schemes: file:// (local filesystem).
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import unquote, urlparse

from ulid import ULID

from .exceptions import StorageError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    """Reduce a client-supplied filename to a safe basename."""
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


class ArtifactStore(ABC):
    """Abstract base class for artifact storage."""

    @abstractmethod
    def put(self, prefix: str, filename: str, content: bytes) -> str:
        """Store ``content`` under ``prefix`` and return its URL."""
        pass

    @abstractmethod
    def delete(self, url: str) -> bool:
        """Delete the artifact at ``url``. Returns False if it did not exist."""
        pass

    @abstractmethod
    def owns(self, url: str) -> bool:
        """Whether ``url`` points inside this store."""
        pass


class FileArtifactStore(ArtifactStore):
    """Local filesystem artifact store (file:// URLs).

    Structure:
        {root}/
        └── {modality}/{owner_id}/{ulid}-{filename}
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, url: str) -> Path:
        parsed = urlparse(url)
        if parsed.scheme != "file":
            raise StorageError(f"Unsupported artifact URL scheme: {parsed.scheme or 'none'}")
        path = Path(unquote(parsed.path)).resolve()
        if not path.is_relative_to(self.root):
            raise StorageError("Artifact URL is outside the artifact store")
        return path

    def put(self, prefix: str, filename: str, content: bytes) -> str:
        """Write bytes to a new, uniquely named file."""
        parts = [safe_filename(part) for part in prefix.split("/") if part]
        directory = self.root.joinpath(*parts)
        directory.mkdir(parents=True, exist_ok=True)

        path = directory / f"{ULID()}-{safe_filename(filename)}"
        try:
            path.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to store artifact: {e}") from e
        return path.as_uri()

    def delete(self, url: str) -> bool:
        """Remove the file behind ``url``."""
        path = self._path_for(url)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete artifact: {e}") from e
        return True

    def owns(self, url: str) -> bool:
        try:
            self._path_for(url)
        except StorageError:
            return False
        return True


def create_artifact_store(uri: str) -> ArtifactStore:
    """Factory function to create the appropriate ArtifactStore from a URI.

    Args:
        uri: Base URI (e.g., "file:///var/lib/colorvision/artifacts")

    Returns:
        ArtifactStore instance for the given URI scheme

    Raises:
        ValueError: If URI scheme is not supported
    """
    parsed = urlparse(uri)

    if parsed.scheme == "file":
        # file://./artifacts keeps a relative root; file:///abs is absolute
        path = f"{parsed.netloc}{parsed.path}" if parsed.netloc else parsed.path
        return FileArtifactStore(Path(unquote(path)))

    raise ValueError(
        f"Unsupported storage scheme: {parsed.scheme}. Supported: file://"
    )
