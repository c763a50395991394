"""Async Data Access Layer for SESSION, MESSAGE and FILE tables.

Each method opens its own connection through
`utils.database_init.AsyncDatabaseInitializer`; there are no transactions
spanning more than one call.

Messages are reloaded by `created_at`, then insertion `seq`. Concurrent
writes may commit out of order, so `seq` alone does not reflect the order
the messages were shown in.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from models.session_models import Message, MessageRole, StudySession, UploadedFile
from utils.database_init import AsyncDatabaseInitializer


class SessionDAL:
    """Data access layer for study sessions and their children."""

    _SESSION_COLUMNS = (
        "id",
        "account_uid",
        "topic",
        "diagram",
        "image_ref",
        "pinned",
        "created_at",
        "updated_at",
    )
    _FILE_COLUMNS = (
        "id",
        "name",
        "size_bytes",
        "mime_type",
        "uploaded_at",
        "content_b64",
        "summary",
        "preview_b64",
    )
    _SESSION_LIST, _FILE_LIST = ", ".join(_SESSION_COLUMNS), ", ".join(_FILE_COLUMNS)

    # Fields callers may change through `update_session_fields`.
    UPDATABLE_FIELDS = ("topic", "diagram", "image_ref", "pinned")

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_session(self, session: StudySession) -> None:
        """Insert a new SESSION row (messages and files are added separately)."""
        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO SESSION ({self._SESSION_LIST}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    session.id,
                    session.account_uid,
                    session.topic,
                    session.diagram,
                    session.image_ref,
                    int(session.pinned),
                    session.created_at,
                    session.updated_at,
                ),
            )
            await conn.commit()

    async def get_session(self, session_id: str) -> Optional[StudySession]:
        """Return a fully loaded session, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._SESSION_LIST} FROM SESSION WHERE id = ?",
                (session_id,),
            )
            row = await cur.fetchone()
            if row is None:
                return None
            return await self._load(conn, row)

    async def list_sessions(self, account_uid: str) -> List[StudySession]:
        """Return sessions for an account: pinned first, then most recent.

        Ties are broken by session id so the order is stable.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._SESSION_LIST} FROM SESSION WHERE account_uid = ? "
                "ORDER BY pinned DESC, updated_at DESC, id ASC",
                (account_uid,),
            )
            rows = await cur.fetchall()
            return [await self._load(conn, r) for r in rows]

    async def update_session_fields(self, session_id: str, fields: Dict[str, Any]) -> bool:
        """Update selected SESSION columns. Returns True if a row was changed."""
        unknown = set(fields) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported session fields: {', '.join(sorted(unknown))}")

        updates = {col: (int(val) if col == "pinned" else val) for col, val in fields.items()}
        assignments = [f"{col} = ?" for col in updates]
        assignments.append("updated_at = ?")
        params = list(updates.values()) + [time.time(), session_id]

        async with self._db.connection() as conn:
            await conn.execute(f"UPDATE SESSION SET {', '.join(assignments)} WHERE id = ?", tuple(params))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    async def append_message(self, session_id: str, message: Message) -> None:
        async with self._db.connection() as conn:
            await conn.execute(
                "INSERT INTO MESSAGE (id, session_id, role, content, created_at) VALUES (?, ?, ?, ?, ?)",
                (message.id, session_id, message.role.value, message.content, message.created_at),
            )
            await conn.execute("UPDATE SESSION SET updated_at = ? WHERE id = ?", (time.time(), session_id))
            await conn.commit()

    async def append_file(self, session_id: str, file: UploadedFile) -> None:
        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO FILE (session_id, {self._FILE_LIST}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    session_id,
                    file.id,
                    file.name,
                    file.size_bytes,
                    file.mime_type,
                    file.uploaded_at,
                    file.content_b64,
                    file.summary,
                    file.preview_b64,
                ),
            )
            await conn.execute("UPDATE SESSION SET updated_at = ? WHERE id = ?", (time.time(), session_id))
            await conn.commit()

    async def update_file_summary(self, session_id: str, file_id: str, summary: str) -> bool:
        async with self._db.connection() as conn:
            await conn.execute(
                "UPDATE FILE SET summary = ? WHERE id = ? AND session_id = ?",
                (summary, file_id, session_id),
            )
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    async def _load(self, conn, row: Sequence[object]) -> StudySession:
        """Build a StudySession from a SESSION row plus its messages and files."""
        cur = await conn.execute(
            "SELECT id, role, content, created_at FROM MESSAGE WHERE session_id = ? ORDER BY created_at ASC, seq ASC",
            (row[0],),
        )
        messages = tuple(
            Message(id=m[0], role=MessageRole(m[1]), content=m[2], created_at=m[3])
            for m in await cur.fetchall()
        )
        cur = await conn.execute(
            f"SELECT {self._FILE_LIST} FROM FILE WHERE session_id = ? ORDER BY seq ASC",
            (row[0],),
        )
        files = tuple(self._row_to_file(f) for f in await cur.fetchall())
        return StudySession(
            id=row[0],
            account_uid=row[1],
            topic=row[2],
            diagram=row[3],
            image_ref=row[4],
            pinned=bool(row[5]),
            created_at=row[6],
            updated_at=row[7],
            messages=messages,
            files=files,
        )

    @staticmethod
    def _row_to_file(row: Sequence[object]) -> UploadedFile:
        return UploadedFile(
            id=row[0],
            name=row[1],
            size_bytes=row[2],
            mime_type=row[3],
            uploaded_at=row[4],
            content_b64=row[5],
            summary=row[6],
            preview_b64=row[7],
        )
