"""PostgreSQL schema for the articles store.

The lexical index is a generated ``tsvector`` column so it is recomputed by
the database on every insert or update of ``title``/``content``. Hybrid
scoring lives in the ``hybrid_search`` SQL function, which evaluates both
signals for every row, blends them, and returns the top ``match_count`` rows.
"""

from typing import List, Optional

import structlog
from asyncpg import Connection

logger = structlog.get_logger("document_store.schema")

ARTICLES_TABLE = "articles"

TEXT_SEARCH_CONFIG = "simple"


def articles_table_sql(dimension: int) -> str:
    return f"""
        CREATE TABLE IF NOT EXISTS {ARTICLES_TABLE} (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            title TEXT NOT NULL DEFAULT '',
            content TEXT NOT NULL DEFAULT '',
            search_vector TSVECTOR GENERATED ALWAYS AS (
                setweight(to_tsvector('{TEXT_SEARCH_CONFIG}', coalesce(title, '')), 'A') ||
                setweight(to_tsvector('{TEXT_SEARCH_CONFIG}', coalesce(content, '')), 'B')
            ) STORED,
            embedding vector({dimension}),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        );
    """


def hybrid_search_function_sql(dimension: int) -> str:
    """DDL for the ``hybrid_search`` scoring function.

    ``query_text`` is ``to_tsquery`` input as rendered by
    ``ParsedQuery.to_tsquery``. Zero-norm vectors score 0.
    """
    return f"""
        CREATE OR REPLACE FUNCTION hybrid_search(
            query_text TEXT,
            query_embedding vector({dimension}),
            match_count INT DEFAULT 10,
            text_weight FLOAT8 DEFAULT 0.6,
            vector_weight FLOAT8 DEFAULT 0.4
        )
        RETURNS TABLE (
            id UUID,
            title TEXT,
            body TEXT,
            text_score FLOAT8,
            vector_score FLOAT8,
            hybrid_score FLOAT8
        )
        LANGUAGE sql STABLE
        AS $$
            WITH q AS (
                SELECT to_tsquery('{TEXT_SEARCH_CONFIG}', query_text) AS tsq
            ),
            scored AS (
                SELECT
                    a.id,
                    a.title,
                    a.content AS body,
                    CASE WHEN a.search_vector @@ q.tsq
                        THEN ts_rank(a.search_vector, q.tsq, 32)::FLOAT8
                        ELSE 0::FLOAT8
                    END AS text_score,
                    CASE WHEN a.embedding IS NULL
                            OR vector_norm(a.embedding) = 0
                            OR vector_norm(query_embedding) = 0
                        THEN 0::FLOAT8
                        ELSE GREATEST(1 - (a.embedding <=> query_embedding), 0)::FLOAT8
                    END AS vector_score
                FROM {ARTICLES_TABLE} a, q
            )
            SELECT
                s.id,
                s.title,
                s.body,
                s.text_score,
                s.vector_score,
                text_weight * s.text_score + vector_weight * s.vector_score AS hybrid_score
            FROM scored s
            ORDER BY 6 DESC, s.id ASC
            LIMIT match_count;
        $$;
    """


INDEX_STATEMENTS = [
    f"CREATE INDEX IF NOT EXISTS idx_{ARTICLES_TABLE}_search_vector ON {ARTICLES_TABLE} USING gin(search_vector);",
    f"CREATE INDEX IF NOT EXISTS idx_{ARTICLES_TABLE}_embedding ON {ARTICLES_TABLE} USING hnsw (embedding vector_cosine_ops);",
]

UPDATED_AT_TRIGGER = f"""
    CREATE OR REPLACE FUNCTION update_updated_at_column()
    RETURNS TRIGGER AS $$
    BEGIN
        NEW.updated_at = CURRENT_TIMESTAMP;
        RETURN NEW;
    END;
    $$ language 'plpgsql';

    DROP TRIGGER IF EXISTS update_{ARTICLES_TABLE}_updated_at ON {ARTICLES_TABLE};
    CREATE TRIGGER update_{ARTICLES_TABLE}_updated_at BEFORE UPDATE ON {ARTICLES_TABLE}
        FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


def schema_statements(dimension: int, read_role: Optional[str] = None) -> List[str]:
    """All DDL needed for a fresh database, in execution order."""
    if dimension < 1:
        raise ValueError("Vector dimension must be positive")

    statements = [
        "CREATE EXTENSION IF NOT EXISTS vector;",
        "CREATE EXTENSION IF NOT EXISTS pgcrypto;",
        articles_table_sql(dimension),
        *INDEX_STATEMENTS,
        UPDATED_AT_TRIGGER,
        hybrid_search_function_sql(dimension),
    ]

    if read_role:
        # Retrieval runs with read-only credentials
        statements.append(f'GRANT SELECT ON {ARTICLES_TABLE} TO "{read_role}";')
        statements.append(
            f'GRANT EXECUTE ON FUNCTION hybrid_search(TEXT, vector({dimension}), INT, FLOAT8, FLOAT8) TO "{read_role}";'
        )

    return statements


async def init_schema(conn: Connection, dimension: int, read_role: Optional[str] = None) -> None:
    """Create the extension, table, indexes, trigger, and scoring function."""
    for statement in schema_statements(dimension, read_role):
        await conn.execute(statement)
    logger.info("Schema initialized", dimension=dimension, read_role=read_role)
