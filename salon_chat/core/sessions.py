"""
Session store: one append-only conversation transcript per session id.

Concurrent appends to the same session are not serialised; two requests racing
on one id may interleave their turns.
"""

import dataclasses
from datetime import datetime
from typing import Optional

from .db import DB_ERRORS, get_db, init_db
from .errors import StoreError
from .schema import ConversationTurn, Session
from ..util.logging import logger


class SessionStore:
    """SQLite-backed conversation store."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        init_db(db_path)

    def get(self, session_id: str) -> Optional[Session]:
        """Get a session with its full transcript, or None when unknown."""
        if not session_id or not session_id.strip():
            return None

        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT id, created_at, updated_at FROM chat_sessions WHERE id = ?",
                    (session_id,)
                )
                row = cursor.fetchone()
                if not row:
                    return None

                cursor.execute(
                    "SELECT role, content, ts FROM chat_turns WHERE session_id = ? ORDER BY id",
                    (session_id,)
                )
                turns = [
                    ConversationTurn(role=role, content=content, timestamp=datetime.fromisoformat(ts))
                    for role, content, ts in cursor.fetchall()
                ]
        except DB_ERRORS as e:
            logger.log_session_operation("get", session_id, {"error": str(e)}, status="failed")
            raise StoreError(f"Failed to read session {session_id}", operation="get") from e

        sid, created_at, updated_at = row
        return Session(
            id=sid,
            turns=turns,
            created_at=datetime.fromisoformat(created_at),
            updated_at=datetime.fromisoformat(updated_at)
        )

    def exists(self, session_id: str) -> bool:
        """Check whether a session id is known to the store."""
        if not session_id or not session_id.strip():
            return False

        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT 1 FROM chat_sessions WHERE id = ?", (session_id,))
                return cursor.fetchone() is not None
        except DB_ERRORS as e:
            raise StoreError(f"Failed to look up session {session_id}", operation="exists") from e

    def append(self, session_id: str, turn: ConversationTurn) -> Session:
        """Append a turn, creating the session when the id is unknown."""
        if not session_id or not session_id.strip():
            raise StoreError("Cannot append to a blank session id", operation="append")

        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT 1 FROM chat_sessions WHERE id = ?", (session_id,))
                is_new = cursor.fetchone() is None

                # Timestamps never go backwards within a session
                cursor.execute(
                    "SELECT ts FROM chat_turns WHERE session_id = ? ORDER BY id DESC LIMIT 1",
                    (session_id,)
                )
                last = cursor.fetchone()
                if last and turn.timestamp < datetime.fromisoformat(last[0]):
                    turn = dataclasses.replace(turn, timestamp=datetime.fromisoformat(last[0]))

                ts = turn.timestamp.isoformat()
                if is_new:
                    cursor.execute(
                        "INSERT INTO chat_sessions (id, created_at, updated_at) VALUES (?, ?, ?)",
                        (session_id, ts, ts)
                    )
                else:
                    cursor.execute(
                        "UPDATE chat_sessions SET updated_at = ? WHERE id = ?",
                        (ts, session_id)
                    )

                cursor.execute(
                    "INSERT INTO chat_turns (session_id, role, content, ts) VALUES (?, ?, ?, ?)",
                    (session_id, turn.role, turn.content, ts)
                )
                conn.commit()
        except DB_ERRORS as e:
            logger.log_session_operation("append", session_id, {"role": turn.role, "error": str(e)}, status="failed")
            raise StoreError(f"Failed to append turn to session {session_id}", operation="append") from e

        logger.log_session_operation("append", session_id, {
            "role": turn.role,
            "created": is_new,
            "content": turn.content
        })
        return self.get(session_id)

    def clear(self, session_id: str) -> None:
        """Remove every turn of a session. The id is kept; unknown ids are a no-op."""
        if not session_id or not session_id.strip():
            return

        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM chat_turns WHERE session_id = ?", (session_id,))
                removed = cursor.rowcount
                cursor.execute(
                    "UPDATE chat_sessions SET updated_at = ? WHERE id = ?",
                    (datetime.now().isoformat(), session_id)
                )
                conn.commit()
        except DB_ERRORS as e:
            logger.log_session_operation("clear", session_id, {"error": str(e)}, status="failed")
            raise StoreError(f"Failed to clear session {session_id}", operation="clear") from e

        logger.log_session_operation("clear", session_id, {"turns_removed": removed})
