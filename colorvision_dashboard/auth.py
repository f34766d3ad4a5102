"""
Authentication context.

Every request is authenticated once, up front: the bearer token is resolved
to an ``AuthContext`` which handlers receive as an explicit argument.
Missing, unknown, expired or revoked sessions all yield a uniform 401.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .db.base import get_db
from .db.models import PatientSessionModel

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller of a request."""

    user_id: str
    session_token: str


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SessionAuthProvider:
    """Issues and resolves opaque bearer sessions."""

    def __init__(self, db: Session):
        self.db = db

    def issue(self, patient_id: str, ttl_minutes: int) -> PatientSessionModel:
        """Create a new session for ``patient_id``."""
        now = datetime.now(timezone.utc)
        session = PatientSessionModel(
            token=secrets.token_urlsafe(32),
            patient_id=patient_id,
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    def resolve(self, token: str) -> Optional[AuthContext]:
        """Return the context for a live session, or None."""
        session = self.db.get(PatientSessionModel, token)
        if session is None or session.revoked_at is not None:
            return None
        if _as_utc(session.expires_at) <= datetime.now(timezone.utc):
            return None
        return AuthContext(user_id=session.patient_id, session_token=session.token)

    def revoke(self, token: str) -> bool:
        session = self.db.get(PatientSessionModel, token)
        if session is None or session.revoked_at is not None:
            return False
        session.revoked_at = datetime.now(timezone.utc)
        self.db.commit()
        return True


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_auth_context(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> AuthContext:
    """FastAPI dependency resolving the bearer session."""
    if not authorization:
        raise _unauthorized()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized()

    context = SessionAuthProvider(db).resolve(token.strip())
    if context is None:
        logger.info("auth_rejected")
        raise _unauthorized()
    return context
