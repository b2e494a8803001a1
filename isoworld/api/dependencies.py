"""FastAPI dependency injection — provides the WorldSession singleton."""

from __future__ import annotations

from isoworld.api.session import WorldSession

_session: WorldSession | None = None


def set_session(session: WorldSession | None) -> None:
    global _session
    _session = session


def get_session() -> WorldSession:
    if _session is None:
        raise RuntimeError("WorldSession not initialized — server not started correctly.")
    return _session
