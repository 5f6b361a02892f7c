"""
In-memory store for editor sessions
Sessions live only as long as the process; nothing is written to disk
"""
import os
from datetime import datetime, timedelta
from typing import Optional, Dict

from .models import EditorSession

SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "3600"))

_sessions: Dict[str, EditorSession] = {}


def expire_idle_sessions(now: Optional[datetime] = None) -> int:
    """Drop sessions untouched for longer than the TTL; returns how many were dropped"""
    now = now or datetime.now()
    cutoff = now - timedelta(seconds=SESSION_TTL_SECONDS)
    expired = [
        session_id for session_id, session in _sessions.items()
        if session.last_active < cutoff and not session.is_loading
    ]
    for session_id in expired:
        del _sessions[session_id]
    if expired:
        print(f"🧹 Expired {len(expired)} idle session(s)")
    return len(expired)


def create_session(language: str = "javascript") -> EditorSession:
    """Create and register a new editor session"""
    expire_idle_sessions()
    session = EditorSession(language=language)
    _sessions[session.session_id] = session
    print(f"✅ Created session {session.session_id} ({language})")
    return session


def get_session(session_id: str) -> Optional[EditorSession]:
    session = _sessions.get(session_id)
    if session is not None:
        session.touch()
    return session


def delete_session(session_id: str) -> bool:
    """Discard a session; returns False when it did not exist"""
    session = _sessions.pop(session_id, None)
    if session is None:
        return False
    print(f"🗑️ Discarded session {session_id}")
    return True


def count_sessions() -> int:
    return len(_sessions)


def clear_sessions():
    _sessions.clear()
