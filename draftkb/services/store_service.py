import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator

from draftkb.core.models import Chunk, Document, DocumentStatus, utcnow

_DOC_COLUMNS = (
    "id, user_id, title, description, category, tags_json, status, filename, file_type, "
    "file_size, file_hash, extracted_text, word_count, page_count, summary, key_topics_json, "
    "business_context_json, title_embedding_json, content_embedding_json, combined_embedding_json, "
    "usage_count, processing_error, failure_code, created_at, processed_at"
)
_CHUNK_COLUMNS = (
    "document_id, chunk_index, user_id, text, page_number, section_title, chunk_type, "
    "context_before, context_after, embedding_json"
)


def _dumps(value) -> str | None:
    return None if value is None else json.dumps(value)


def _loads(raw, default=None):
    return json.loads(raw) if raw else default


def _dt(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


def _row_to_document(r) -> Document:
    return Document(
        id=r[0], user_id=r[1], title=r[2], description=r[3], category=r[4],
        tags=_loads(r[5], []), status=r[6], filename=r[7], file_type=r[8],
        file_size=r[9] or 0, file_hash=r[10], extracted_text=r[11] or "",
        word_count=r[12] or 0, page_count=r[13], summary=r[14] or "",
        key_topics=_loads(r[15], []), business_context=_loads(r[16], {}),
        title_embedding=_loads(r[17]), content_embedding=_loads(r[18]),
        combined_embedding=_loads(r[19]), usage_count=r[20] or 0,
        processing_error=r[21], failure_code=r[22],
        created_at=_dt(r[23]) or utcnow(), processed_at=_dt(r[24]),
    )


def _row_to_chunk(r) -> Chunk:
    return Chunk(
        document_id=r[0], index=r[1], user_id=r[2], text=r[3], page_number=r[4],
        section_title=r[5], chunk_type=r[6], context_before=r[7], context_after=r[8],
        embedding=_loads(r[9]),
    )


class DocumentStore:
    """SQLite persistence for documents and their chunks.

    A connection is opened per call, so one store can be shared by concurrent
    requests.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_db(self):
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute("""
            CREATE TABLE IF NOT EXISTS documents(
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT,
                description TEXT,
                category TEXT,
                tags_json TEXT,
                status TEXT NOT NULL,
                filename TEXT,
                file_type TEXT,
                file_size INTEGER,
                file_hash TEXT,
                extracted_text TEXT,
                word_count INTEGER,
                page_count INTEGER,
                summary TEXT,
                key_topics_json TEXT,
                business_context_json TEXT,
                title_embedding_json TEXT,
                content_embedding_json TEXT,
                combined_embedding_json TEXT,
                usage_count INTEGER DEFAULT 0,
                processing_error TEXT,
                failure_code TEXT,
                created_at TEXT,
                processed_at TEXT
            );
            """)
            cur.execute("""
            CREATE TABLE IF NOT EXISTS chunks(
                document_id TEXT NOT NULL,
                chunk_index INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                text TEXT,
                page_number INTEGER,
                section_title TEXT,
                chunk_type TEXT,
                context_before TEXT,
                context_after TEXT,
                embedding_json TEXT,
                PRIMARY KEY(document_id, chunk_index),
                FOREIGN KEY(document_id) REFERENCES documents(id)
            );
            """)
            cur.execute("CREATE INDEX IF NOT EXISTS idx_documents_user ON documents(user_id, status);")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_chunks_user ON chunks(user_id);")

    def save_document(self, doc: Document):
        """Insert or fully replace the document row."""
        with self._conn() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO documents({_DOC_COLUMNS}) "
                "VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)",
                (
                    doc.id, doc.user_id, doc.title, doc.description, doc.category,
                    json.dumps(doc.tags), doc.status, doc.filename, doc.file_type,
                    doc.file_size, doc.file_hash, doc.extracted_text, doc.word_count,
                    doc.page_count, doc.summary, json.dumps(doc.key_topics),
                    json.dumps(doc.business_context), _dumps(doc.title_embedding),
                    _dumps(doc.content_embedding), _dumps(doc.combined_embedding),
                    doc.usage_count, doc.processing_error, doc.failure_code,
                    doc.created_at.isoformat(),
                    doc.processed_at.isoformat() if doc.processed_at else None,
                ),
            )

    def update_status(
        self,
        doc_id: str,
        status: DocumentStatus,
        error: str | None = None,
        failure_code: str | None = None,
    ) -> None:
        with self._conn() as conn:
            conn.execute(
                "UPDATE documents SET status=?, processing_error=?, failure_code=? WHERE id=?",
                (status, error, failure_code, doc_id),
            )

    def replace_chunks(self, doc_id: str, user_id: str, chunks: list[Chunk]):
        """Swap the document's chunk set in one transaction."""
        with self._conn() as conn:
            conn.execute("DELETE FROM chunks WHERE document_id=?", (doc_id,))
            conn.executemany(
                f"INSERT INTO chunks({_CHUNK_COLUMNS}) VALUES(?,?,?,?,?,?,?,?,?,?)",
                [
                    (
                        doc_id, c.index, user_id, c.text, c.page_number, c.section_title,
                        c.chunk_type, c.context_before, c.context_after, _dumps(c.embedding),
                    )
                    for c in chunks
                ],
            )

    def get_document(self, doc_id: str) -> Document | None:
        with self._conn() as conn:
            row = conn.execute(f"SELECT {_DOC_COLUMNS} FROM documents WHERE id=?", (doc_id,)).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(
        self,
        user_id: str,
        status: DocumentStatus | None = None,
        category: str | None = None,
        include_archived: bool = False,
    ) -> list[Document]:
        sql = f"SELECT {_DOC_COLUMNS} FROM documents WHERE user_id=?"
        params: list = [user_id]
        if status:
            sql += " AND status=?"
            params.append(status)
        elif not include_archived:
            sql += " AND status != 'archived'"
        if category:
            sql += " AND category=?"
            params.append(category)
        sql += " ORDER BY created_at DESC"
        with self._conn() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_document(r) for r in rows]

    def get_chunks(self, doc_id: str) -> list[Chunk]:
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE document_id=? ORDER BY chunk_index",
                (doc_id,),
            ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def list_user_chunks(self, user_id: str, category: str | None = None) -> list[tuple[Chunk, Document]]:
        """Chunks of the user's processed documents, with their parent document."""
        docs = {d.id: d for d in self.list_documents(user_id, status="processed", category=category)}
        if not docs:
            return []
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE user_id=? ORDER BY document_id, chunk_index",
                (user_id,),
            ).fetchall()
        out = []
        for r in rows:
            if r[0] in docs:
                out.append((_row_to_chunk(r), docs[r[0]]))
        return out

    def archive_document(self, doc_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("UPDATE documents SET status='archived' WHERE id=?", (doc_id,))
            return cur.rowcount > 0

    def increment_usage(self, doc_ids: Iterable[str]) -> int:
        ids = list(dict.fromkeys(doc_ids))
        if not ids:
            return 0
        with self._conn() as conn:
            cur = conn.executemany(
                "UPDATE documents SET usage_count = usage_count + 1 WHERE id=?",
                [(i,) for i in ids],
            )
            return cur.rowcount
