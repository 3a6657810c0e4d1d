"""Search index DDL statements for SQLite.

The search index is created via raw DDL, not ORM models, because:
- the lexical side is an FTS5 virtual table (cannot be represented as ORM)
- the vector side is one sqlite-vec vec0 table per perspective
Both are read and written with raw SQL via the SearchDocument dataclass.
"""

from sqlalchemy import DDL

# Perspective vector fields and their backing vec0 tables
VECTOR_FIELD_TABLES = {
    "vec_problem": "search_vec_problem",
    "vec_tech": "search_vec_tech",
    "vec_solution": "search_vec_solution",
}

# FTS5 columns in declaration order. bm25() takes one weight per column in this order.
SEARCH_DOCUMENT_COLUMNS = (
    "doc_id",
    "title",
    "description",
    "prompt_text",
    "tags",
    "text_problem",
    "text_tech",
    "text_solution",
    "ai_model",
    "tags_json",
    "reproduction_rate",
    "created_at",
    "updated_at",
)

CREATE_SEARCH_DOCUMENT = DDL("""
CREATE VIRTUAL TABLE IF NOT EXISTS search_document USING fts5(
    doc_id UNINDEXED,            -- Experiment id (string form)

    -- Lexically searchable fields
    title,
    description,
    prompt_text,
    tags,                        -- Space separated tag names
    text_problem,                -- Perspective: problem solved
    text_tech,                   -- Perspective: technology involved
    text_solution,               -- Perspective: solution or technique

    -- Filter and display fields
    ai_model UNINDEXED,          -- Exact match filter
    tags_json UNINDEXED,         -- JSON array for exact tag filtering
    reproduction_rate UNINDEXED, -- 0-100, range filter
    created_at UNINDEXED,        -- ISO timestamp, recency sort
    updated_at UNINDEXED,

    -- Configuration
    tokenize='porter unicode61 remove_diacritics 2'
);
""")

DROP_SEARCH_DOCUMENT = DDL("DROP TABLE IF EXISTS search_document")


def create_search_vector_table(table_name: str, dimensions: int) -> DDL:
    """Build sqlite-vec virtual table DDL for one perspective vector field.

    Rows are keyed by the rowid of the matching search_document row.
    """
    return DDL(
        f"""
CREATE VIRTUAL TABLE IF NOT EXISTS {table_name}
USING vec0(embedding float[{dimensions}] distance_metric=cosine)
"""
    )


def drop_search_vector_table(table_name: str) -> DDL:
    return DDL(f"DROP TABLE IF EXISTS {table_name}")
