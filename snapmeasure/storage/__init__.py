"""Session persistence."""

from snapmeasure.storage.local import LocalSessionStore, load_session_file, restore_session, session_state
from snapmeasure.storage.schema import SessionState

__all__ = ["LocalSessionStore", "SessionState", "load_session_file", "restore_session", "session_state"]
