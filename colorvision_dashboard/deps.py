"""
Process-wide FastAPI dependencies: the job dispatcher and the artifact store.

Both are created lazily on first use so that settings are read at runtime.
Tests replace them through ``app.dependency_overrides``.
"""

from typing import Optional

from .config import get_settings
from .db.base import get_session_local
from .lifecycle.dispatcher import JobDispatcher, create_dispatcher
from .storage import ArtifactStore, create_artifact_store

_dispatcher: Optional[JobDispatcher] = None
_artifact_store: Optional[ArtifactStore] = None


def get_dispatcher() -> JobDispatcher:
    """Return the shared job dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = create_dispatcher(get_settings(), get_session_local())
    return _dispatcher


def get_artifact_store() -> ArtifactStore:
    """Return the shared artifact store."""
    global _artifact_store
    if _artifact_store is None:
        _artifact_store = create_artifact_store(get_settings().artifact_root)
    return _artifact_store
