# users.py
import logging
import sqlite3
import time
import uuid
from typing import Optional, Dict, Any

from .db import Database, fetchone_dict
from .errors import DuplicateEmail, InternalError

logger = logging.getLogger(__name__)


class UserStore:
    """Credential store over the ``users`` table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        conn = self._db.connect()
        row = conn.execute("SELECT * FROM users WHERE email = ?;", (email,)).fetchone()
        return fetchone_dict(row)

    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        conn = self._db.connect()
        row = conn.execute("SELECT * FROM users WHERE id = ?;", (user_id,)).fetchone()
        return fetchone_dict(row)

    def create(self, email: str, password_hash: str,
               username: str | None = None) -> Dict[str, Any]:
        user_id = uuid.uuid4().hex
        try:
            with self._db.transaction() as conn:
                conn.execute("""
                    INSERT INTO users(id, email, password_hash, username, created_at)
                    VALUES(?,?,?,?,?)
                """, (user_id, email, password_hash, username, int(time.time())))
                row = conn.execute("SELECT * FROM users WHERE id = ?;", (user_id,)).fetchone()
        except sqlite3.IntegrityError as e:
            # the unique index is the real backstop against concurrent sign-ups
            raise DuplicateEmail() from e
        if row is None:
            logger.error("user %s missing right after insert", user_id)
            raise InternalError()
        return dict(row)
