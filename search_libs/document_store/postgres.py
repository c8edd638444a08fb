"""PostgreSQL/pgvector implementation of the document store.

Keyword ranking uses ``ts_rank`` over the generated ``search_vector`` column
with ``to_tsquery('simple', ...)``. Raw queries are parsed in Python with
``parse_websearch_query`` and rendered by ``ParsedQuery.to_tsquery``, so both
stores read a query the same way. Hybrid ranking is delegated to the
``hybrid_search`` SQL function created by ``schema.init_schema``.

Document ids are UUIDs; they are parsed before any query so lookups hit the
primary key and malformed ids never reach the driver.

Connection management
- Two asyncpg pools are created on demand: a read pool for retrieval and a
  write pool (elevated credentials) for document and embedding writes
- Queries are funneled through ``_execute_query`` for uniform error handling
"""

import uuid
from typing import Any, Dict, List, Optional

import asyncpg
import numpy as np
import structlog
from asyncpg import Connection, Pool
from pgvector.asyncpg import register_vector

from .base import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreConnectionError,
    DocumentStoreQueryError,
    InvalidDocumentIdError,
    ScoredDocument,
    ensure_vector_dimension,
)
from ..ranking.signals import parse_websearch_query
from .schema import ARTICLES_TABLE, TEXT_SEARCH_CONFIG

logger = structlog.get_logger("document_store.postgres")

KEYWORD_SEARCH_SQL = f"""
    SELECT a.id::text AS id, a.title, a.content AS body,
           ts_rank(a.search_vector, q.tsq)::float8 AS rank
    FROM {ARTICLES_TABLE} a, to_tsquery('{TEXT_SEARCH_CONFIG}', $1) AS q(tsq)
    WHERE a.search_vector @@ q.tsq
    ORDER BY rank DESC, a.id ASC
    LIMIT $2
"""

HYBRID_SEARCH_SQL = """
    SELECT id::text AS id, title, body, text_score, vector_score, hybrid_score
    FROM hybrid_search($1, $2, $3, $4, $5)
"""


class PostgresDocumentStore(DocumentStore):
    """Articles table in PostgreSQL with the pgvector extension."""

    def __init__(
        self,
        dsn: str,
        write_dsn: Optional[str] = None,
        pool_size: int = 10,
        command_timeout: int = 60,
        vector_dimension: Optional[int] = None,
    ):
        """Configure a PostgreSQL-backed document store.

        Parameters
        - dsn: Read-only DSN used by the retrieval paths
        - write_dsn: DSN with write privileges; falls back to ``dsn``
        - pool_size: Max size of each asyncpg connection pool
        - command_timeout: Seconds to allow per DB command
        - vector_dimension: Expected dimensionality for stored vectors
        """
        self.dsn = dsn
        self.write_dsn = write_dsn or dsn
        self.pool_size = pool_size
        self.command_timeout = command_timeout
        self.vector_dimension = vector_dimension
        self._read_pool: Optional[Pool] = None
        self._write_pool: Optional[Pool] = None

    async def _init_connection(self, conn: Connection) -> None:
        """Register the pgvector codec for asyncpg connections."""
        await register_vector(conn)

    async def _create_pool(self, dsn: str, role: str) -> Pool:
        try:
            pool = await asyncpg.create_pool(
                dsn,
                min_size=1,
                max_size=self.pool_size,
                command_timeout=self.command_timeout,
                init=self._init_connection,
            )
            logger.info("Created PostgreSQL connection pool", role=role, pool_size=self.pool_size)
            return pool
        except Exception as e:
            logger.error("Failed to create PostgreSQL connection pool", role=role, error=str(e))
            raise DocumentStoreConnectionError(f"Failed to create {role} connection pool: {e}")

    async def _get_pool(self, write: bool = False) -> Pool:
        """Get or create the read or write pool.

        Lazily initializes pools so callers don't pay startup cost unless a
        call actually needs the database.
        """
        if write:
            if self._write_pool is None:
                self._write_pool = await self._create_pool(self.write_dsn, "write")
            return self._write_pool

        if self._read_pool is None:
            self._read_pool = await self._create_pool(self.dsn, "read")
        return self._read_pool

    async def _execute_query(
        self,
        query: str,
        *args: Any,
        fetch: bool = False,
        fetch_one: bool = False,
        write: bool = False
    ) -> Any:
        """Execute a query with error handling.

        All driver failures are wrapped in ``DocumentStoreQueryError``;
        connection failures surface as ``DocumentStoreConnectionError``.
        """
        pool = await self._get_pool(write=write)
        try:
            async with pool.acquire() as conn:
                if fetch_one:
                    return await conn.fetchrow(query, *args)
                if fetch:
                    return await conn.fetch(query, *args)
                return await conn.execute(query, *args)
        except Exception as e:
            logger.error("Query execution failed", query=query, error=str(e))
            raise DocumentStoreQueryError(f"Query failed: {e}")

    async def keyword_search(self, query: str, limit: int = 10) -> List[ScoredDocument]:
        parsed = parse_websearch_query(query)
        if parsed.is_empty:
            return []

        rows = await self._execute_query(KEYWORD_SEARCH_SQL, parsed.to_tsquery(), limit, fetch=True)
        results = [
            ScoredDocument(
                id=row["id"],
                title=row["title"],
                body=row["body"],
                hybrid_score=float(row["rank"]),
                text_score=float(row["rank"]),
            )
            for row in rows
        ]
        logger.info("Keyword search completed", results_count=len(results))
        return results

    async def hybrid_search(
        self,
        query: str,
        query_embedding: np.ndarray,
        limit: int = 10,
        text_weight: float = 0.6,
        vector_weight: float = 0.4
    ) -> List[ScoredDocument]:
        vector = ensure_vector_dimension(query_embedding, self.vector_dimension)
        rows = await self._execute_query(
            HYBRID_SEARCH_SQL,
            parse_websearch_query(query).to_tsquery(),
            vector,
            limit,
            text_weight,
            vector_weight,
            fetch=True
        )
        results = [
            ScoredDocument(
                id=row["id"],
                title=row["title"],
                body=row["body"],
                hybrid_score=float(row["hybrid_score"]),
                text_score=float(row["text_score"]),
                vector_score=float(row["vector_score"]),
            )
            for row in rows
        ]
        logger.info(
            "Hybrid search completed",
            query_vector_dim=len(vector),
            results_count=len(results)
        )
        return results

    async def get_document(self, document_id: str) -> Optional[Document]:
        try:
            key = self._parse_id(document_id)
        except InvalidDocumentIdError:
            return None

        row = await self._execute_query(
            f"SELECT id::text AS id, title, content, embedding FROM {ARTICLES_TABLE} WHERE id = $1",
            key,
            fetch_one=True
        )
        return self._row_to_document(row) if row else None

    async def upsert_document(
        self,
        title: str,
        body: str,
        document_id: Optional[str] = None
    ) -> Document:
        if document_id:
            key = self._parse_id(document_id)
            row = await self._execute_query(
                f"""
                    INSERT INTO {ARTICLES_TABLE} (id, title, content)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (id)
                    DO UPDATE SET title = EXCLUDED.title, content = EXCLUDED.content
                    RETURNING id::text AS id, title, content, embedding
                """,
                key,
                title or "",
                body or "",
                fetch_one=True,
                write=True
            )
        else:
            row = await self._execute_query(
                f"""
                    INSERT INTO {ARTICLES_TABLE} (title, content)
                    VALUES ($1, $2)
                    RETURNING id::text AS id, title, content, embedding
                """,
                title or "",
                body or "",
                fetch_one=True,
                write=True
            )

        document = self._row_to_document(row)
        logger.info("Stored document", document_id=document.id)
        return document

    async def list_documents(self, missing_embedding_only: bool = False) -> List[Document]:
        where = "WHERE embedding IS NULL" if missing_embedding_only else ""
        rows = await self._execute_query(
            f"SELECT id::text AS id, title, content, embedding FROM {ARTICLES_TABLE} {where} ORDER BY id",
            fetch=True,
            write=True
        )
        return [self._row_to_document(row) for row in rows]

    async def update_embedding(self, document_id: str, vector: np.ndarray) -> None:
        array = ensure_vector_dimension(vector, self.vector_dimension)
        try:
            key = self._parse_id(document_id)
        except InvalidDocumentIdError:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        result = await self._execute_query(
            f"UPDATE {ARTICLES_TABLE} SET embedding = $2 WHERE id = $1",
            key,
            array,
            write=True
        )

        # asyncpg returns the command tag, e.g. "UPDATE 1"
        if result.split()[-1] == "0":
            raise DocumentNotFoundError(f"Document {document_id} not found")

        logger.info("Stored embedding", document_id=document_id)

    async def count_documents(self) -> Dict[str, int]:
        row = await self._execute_query(
            f"SELECT COUNT(*) AS total, COUNT(embedding) AS with_embedding FROM {ARTICLES_TABLE}",
            fetch_one=True
        )
        return {"total": row["total"], "with_embedding": row["with_embedding"]}

    async def health_check(self) -> bool:
        """Check if the document store is healthy."""
        try:
            await self._execute_query("SELECT 1", fetch_one=True)
            return True
        except Exception as e:
            logger.error("Health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close both connection pools."""
        for pool in (self._read_pool, self._write_pool):
            if pool is not None:
                await pool.close()
        self._read_pool = None
        self._write_pool = None
        logger.info("Closed PostgreSQL connection pools")

    @staticmethod
    def _parse_id(document_id: str) -> uuid.UUID:
        try:
            return uuid.UUID(str(document_id))
        except ValueError:
            raise InvalidDocumentIdError(f"Document id must be a UUID, got {document_id!r}")

    def _row_to_document(self, row: Any) -> Document:
        embedding = row["embedding"]
        return Document(
            id=row["id"],
            title=row["title"] or "",
            body=row["content"] or "",
            embedding=None if embedding is None else np.asarray(embedding, dtype=np.float32),
        )
