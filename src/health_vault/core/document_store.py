# ============================================================================
# src/health_vault/core/document_store.py
# ============================================================================
"""
Document Store

Persists the vault to SQLite: confirmed documents, the single user profile
and chat conversations. Raw sqlite3, JSON for complex fields, the original
file bytes in a BLOB column.

The store is the only owner of persisted documents. Writes are
last-writer-wins; there is exactly one local writer.
"""

import sqlite3
import json
import logging
from pathlib import Path
from typing import List, Optional

from .records import Conversation, ExtractedRecord, MediDocument, Profile
from ..utils.exceptions import DocumentNotFoundError

logger = logging.getLogger(__name__)

PROFILE_KEY = "singleton"


class DocumentStore:
    """
    SQLite-backed store with three namespaces:
    - documents, keyed by id, listed by document_date descending
    - profile, a single row
    - conversations, keyed by id, listed by updated_at descending
    """

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            from ..config import base_settings
            db_path = base_settings.DB_PATH
        self.db_path = Path(db_path)
        self._init_database()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        cur = conn.cursor()

        cur.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id              TEXT PRIMARY KEY,
                file_name       TEXT NOT NULL,
                document_type   TEXT NOT NULL,
                document_date   TEXT NOT NULL,
                uploaded_at     TEXT NOT NULL,
                file_data       BLOB,
                -- Everything except the file bytes
                doc_data        TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_date
            ON documents (document_date DESC)
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS profile (
                key             TEXT PRIMARY KEY,
                profile_data    TEXT NOT NULL
            )
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS conversations (
                id                  TEXT PRIMARY KEY,
                updated_at          TEXT NOT NULL,
                conversation_data   TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_conversations_updated
            ON conversations (updated_at DESC)
        """)

        conn.commit()
        conn.close()
        logger.info(f"Document store initialized: {self.db_path}")

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    def put(self, doc: MediDocument) -> None:
        """Insert or replace a document."""
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("""
            INSERT OR REPLACE INTO documents
                (id, file_name, document_type, document_date, uploaded_at,
                 file_data, doc_data)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            doc.id,
            doc.file_name,
            doc.extracted.document_type.value,
            doc.document_date,
            doc.uploaded_at,
            sqlite3.Binary(doc.file_data),
            json.dumps(doc.to_dict(include_file_data=False)),
        ))
        conn.commit()
        conn.close()
        logger.info(f"Saved document {doc.id} ({doc.file_name}) to store")

    def get(self, doc_id: str) -> Optional[MediDocument]:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("SELECT doc_data, file_data FROM documents WHERE id = ?", (doc_id,))
        row = cur.fetchone()
        conn.close()
        if row:
            return MediDocument.from_dict(json.loads(row[0]), file_data=bytes(row[1] or b""))
        return None

    def get_all(self, document_type: Optional[str] = None) -> List[MediDocument]:
        """
        List documents, newest document_date first.

        Documents sharing a date are ordered by upload time, newest first.
        """
        conn = self._connect()
        cur = conn.cursor()

        query = "SELECT doc_data, file_data FROM documents"
        params: list = []
        if document_type:
            query += " WHERE document_type = ?"
            params.append(document_type)
        query += " ORDER BY document_date DESC, uploaded_at DESC"

        cur.execute(query, params)
        rows = cur.fetchall()
        conn.close()

        return [
            MediDocument.from_dict(json.loads(r[0]), file_data=bytes(r[1] or b""))
            for r in rows
        ]

    def update_extracted(
        self,
        doc_id: str,
        extracted: ExtractedRecord,
        document_date: str,
    ) -> MediDocument:
        """
        Replace a document's record and date after a re-edit.

        uploaded_at, raw_text and the file itself are left untouched.
        """
        doc = self.get(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        doc.extracted = extracted
        doc.document_date = document_date
        self.put(doc)
        return doc

    def delete(self, doc_id: str) -> bool:
        """Delete a document. Returns True if a row was removed."""
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("DELETE FROM documents WHERE id = ?", (doc_id,))
        deleted = cur.rowcount > 0
        conn.commit()
        conn.close()
        return deleted

    def count(self) -> int:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM documents")
        n = cur.fetchone()[0]
        conn.close()
        return n

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------
    def get_profile(self) -> Optional[Profile]:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("SELECT profile_data FROM profile WHERE key = ?", (PROFILE_KEY,))
        row = cur.fetchone()
        conn.close()
        if row:
            return Profile.from_dict(json.loads(row[0]))
        return None

    def save_profile(self, profile: Profile) -> None:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute(
            "INSERT OR REPLACE INTO profile (key, profile_data) VALUES (?, ?)",
            (PROFILE_KEY, json.dumps(profile.to_dict())),
        )
        conn.commit()
        conn.close()

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------
    def save_conversation(self, conversation: Conversation) -> None:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("""
            INSERT OR REPLACE INTO conversations (id, updated_at, conversation_data)
            VALUES (?, ?, ?)
        """, (
            conversation.id,
            conversation.updated_at,
            json.dumps(conversation.to_dict()),
        ))
        conn.commit()
        conn.close()

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute(
            "SELECT conversation_data FROM conversations WHERE id = ?",
            (conversation_id,),
        )
        row = cur.fetchone()
        conn.close()
        if row:
            return Conversation.from_dict(json.loads(row[0]))
        return None

    def get_all_conversations(self) -> List[Conversation]:
        """List conversations, most recently updated first."""
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("SELECT conversation_data FROM conversations ORDER BY updated_at DESC")
        rows = cur.fetchall()
        conn.close()
        return [Conversation.from_dict(json.loads(r[0])) for r in rows]

    def delete_conversation(self, conversation_id: str) -> bool:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        deleted = cur.rowcount > 0
        conn.commit()
        conn.close()
        return deleted

    def clear_conversations(self) -> int:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("DELETE FROM conversations")
        removed = cur.rowcount
        conn.commit()
        conn.close()
        return removed
