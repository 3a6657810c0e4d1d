"""SQLite search repository: FTS5 for lexical matching, sqlite-vec for perspective vectors."""

import asyncio
import json
import re
from collections import defaultdict
from typing import Iterable, Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import OperationalError as SAOperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from prompt_commons import db
from prompt_commons.config import ConfigManager, PromptCommonsConfig
from prompt_commons.models.search import (
    CREATE_SEARCH_DOCUMENT,
    DROP_SEARCH_DOCUMENT,
    SEARCH_DOCUMENT_COLUMNS,
    VECTOR_FIELD_TABLES,
    create_search_vector_table,
    drop_search_vector_table,
)
from prompt_commons.repository.errors import (
    SemanticDependenciesMissingError,
    SemanticSearchDisabledError,
)
from prompt_commons.repository.search_document import SearchDocument
from prompt_commons.repository.search_query import (
    BulkIndexResult,
    KnnClause,
    LexicalClause,
    SearchFilters,
    StoreQuery,
    StoreSearchResult,
    StoreSort,
)

# Upper bound on rows pulled from a single lexical clause before filters apply
LEXICAL_SCAN_LIMIT = 50000
# sqlite-vec rejects k above this value
MAX_VECTOR_K = 4096
TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)

INSERT_SEARCH_DOCUMENT = text(
    f"INSERT INTO search_document ({', '.join(SEARCH_DOCUMENT_COLUMNS)}) "
    f"VALUES ({', '.join(':' + column for column in SEARCH_DOCUMENT_COLUMNS)})"
)


class SQLiteSearchRepository:
    """SQLite implementation of the search store.

    Each experiment is one row in the search_document FTS5 table. Its three
    perspective vectors live in separate vec0 tables keyed by that row's rowid.
    - lexical clauses use MATCH with column filters and per-column bm25() weights
    - vector clauses use sqlite-vec k-NN with cosine distance
    - structural filters are evaluated once per query and intersected with every clause
    """

    def __init__(
        self,
        session_maker,
        app_config: PromptCommonsConfig | None = None,
    ):
        self.session_maker = session_maker
        self._app_config = app_config or ConfigManager().config
        self._semantic_enabled = self._app_config.semantic_search_enabled
        self._vector_dimensions = self._app_config.embedding_dimensions
        self._sqlite_vec_lock = asyncio.Lock()
        self._vector_tables_initialized = False

    @property
    def semantic_enabled(self) -> bool:
        return self._semantic_enabled

    @property
    def vector_dimensions(self) -> int:
        return self._vector_dimensions

    async def init_search_index(self) -> None:
        """Create the FTS5 table, and the vector tables when semantic search is on.

        Uses IF NOT EXISTS so indexed data survives restarts. Vector tables are
        created here so a missing sqlite-vec surfaces at startup, not first query.
        """
        logger.info(f"Initializing search index ({self._app_config.search_index_name})")
        try:
            async with db.scoped_session(self.session_maker) as session:
                await session.execute(CREATE_SEARCH_DOCUMENT)
        except Exception as e:  # pragma: no cover
            logger.error(f"Error initializing search index: {e}")
            raise e

        if self._semantic_enabled:
            await self._ensure_vector_tables()

    async def reset_index(self) -> None:
        """Drop every search table and recreate them empty."""
        logger.warning(f"Resetting search index ({self._app_config.search_index_name})")
        async with db.scoped_session(self.session_maker) as session:
            if self._semantic_enabled:
                await self._ensure_sqlite_vec_loaded(session)
                for table_name in VECTOR_FIELD_TABLES.values():
                    await session.execute(drop_search_vector_table(table_name))
            await session.execute(DROP_SEARCH_DOCUMENT)

        self._vector_tables_initialized = False
        await self.init_search_index()

    # ------------------------------------------------------------------
    # sqlite-vec plumbing
    # ------------------------------------------------------------------

    def _assert_semantic_available(self) -> None:
        if not self._semantic_enabled:
            raise SemanticSearchDisabledError(
                "Semantic search is disabled. Set PROMPT_COMMONS_SEMANTIC_SEARCH_ENABLED=true."
            )

    async def _ensure_sqlite_vec_loaded(self, session: AsyncSession) -> None:
        try:
            await session.execute(text("SELECT vec_version()"))
            return
        except SAOperationalError:
            pass

        try:
            import sqlite_vec  # type: ignore[import-not-found]
        except ImportError as exc:
            raise SemanticDependenciesMissingError(
                "sqlite-vec package is missing. "
                "Install it or disable semantic search: "
                "PROMPT_COMMONS_SEMANTIC_SEARCH_ENABLED=false"
            ) from exc

        async with self._sqlite_vec_lock:
            try:
                await session.execute(text("SELECT vec_version()"))
                return
            except SAOperationalError:
                pass

            async_connection = await session.connection()
            raw_connection = await async_connection.get_raw_connection()
            driver_connection = raw_connection.driver_connection
            await driver_connection.enable_load_extension(True)
            await driver_connection.load_extension(sqlite_vec.loadable_path())
            await driver_connection.enable_load_extension(False)
            await session.execute(text("SELECT vec_version()"))

    async def _ensure_vector_tables(self) -> None:
        self._assert_semantic_available()
        if self._vector_tables_initialized:
            return

        async with db.scoped_session(self.session_maker) as session:
            await self._ensure_sqlite_vec_loaded(session)

            expected_dimension_sql = f"float[{self._vector_dimensions}]"
            for table_name in VECTOR_FIELD_TABLES.values():
                result = await session.execute(
                    text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :name"),
                    {"name": table_name},
                )
                vector_sql = result.scalar()

                # Trigger: stored vectors were built with a different dimensionality.
                # Why: vec0 columns are fixed-size, mixed shapes cannot coexist.
                # Outcome: recreate the table; a resync repopulates it.
                if vector_sql and expected_dimension_sql not in vector_sql:
                    logger.warning(
                        f"Embedding dimension mismatch in {table_name} "
                        f"(expected {self._vector_dimensions}), recreating table"
                    )
                    await session.execute(drop_search_vector_table(table_name))

                await session.execute(
                    create_search_vector_table(table_name, self._vector_dimensions)
                )

        logger.info(f"SQLite vector tables ready (dimensions={self._vector_dimensions})")
        self._vector_tables_initialized = True

    def _distance_to_similarity(self, distance: float) -> float:
        """Convert sqlite-vec cosine distance (0..2) to a similarity in [0, 1]."""
        return min(1.0, max(0.0, 1.0 - distance))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _validate_document(self, document: SearchDocument) -> Optional[str]:
        """Return a reason the document cannot be stored, or None."""
        if not document.id:
            return "document id is required"
        if not 0 <= int(document.reproduction_rate or 0) <= 100:
            return f"reproduction_rate {document.reproduction_rate} is outside 0-100"
        for field_name, vector in document.vectors().items():
            if vector is not None and len(vector) != self._vector_dimensions:
                return (
                    f"{field_name} has {len(vector)} dimensions, "
                    f"expected {self._vector_dimensions}"
                )
        return None

    async def _row_ids_for(self, session: AsyncSession, doc_id: str) -> list[int]:
        result = await session.execute(
            text("SELECT rowid FROM search_document WHERE doc_id = :doc_id"),
            {"doc_id": doc_id},
        )
        return [row[0] for row in result.fetchall()]

    async def _delete_rows(self, session: AsyncSession, doc_id: str) -> int:
        row_ids = await self._row_ids_for(session, doc_id)
        if not row_ids:
            return 0

        params = {f"rowid_{idx}": rowid for idx, rowid in enumerate(row_ids)}
        placeholders = ", ".join(f":rowid_{idx}" for idx in range(len(row_ids)))

        # sqlite-vec has no CASCADE, vectors go first
        if self._semantic_enabled:
            for table_name in VECTOR_FIELD_TABLES.values():
                await session.execute(
                    text(f"DELETE FROM {table_name} WHERE rowid IN ({placeholders})"), params
                )
        await session.execute(
            text(f"DELETE FROM search_document WHERE rowid IN ({placeholders})"), params
        )
        return len(row_ids)

    async def _write_document(self, session: AsyncSession, document: SearchDocument) -> None:
        await self._delete_rows(session, document.id)
        await session.execute(INSERT_SEARCH_DOCUMENT, document.to_insert())

        if not self._semantic_enabled:
            return

        rowid = (await session.execute(text("SELECT last_insert_rowid()"))).scalar_one()
        for field_name, vector in document.vectors().items():
            if not vector:
                continue
            await session.execute(
                text(
                    f"INSERT INTO {VECTOR_FIELD_TABLES[field_name]} (rowid, embedding) "
                    "VALUES (:rowid, :embedding)"
                ),
                {"rowid": rowid, "embedding": json.dumps(vector)},
            )

    async def index_document(self, document: SearchDocument) -> None:
        """Upsert one document keyed by id, replacing any previous version wholesale."""
        problem = self._validate_document(document)
        if problem:
            raise ValueError(f"Cannot index document {document.id}: {problem}")

        if self._semantic_enabled:
            await self._ensure_vector_tables()

        async with db.scoped_session(self.session_maker) as session:
            if self._semantic_enabled:
                await self._ensure_sqlite_vec_loaded(session)
            await self._write_document(session, document)
        logger.debug(f"Indexed document {document.id} ({document.embedded_count} vectors)")

    async def bulk_index_documents(self, documents: list[SearchDocument]) -> BulkIndexResult:
        """Upsert many documents in one transaction.

        Invalid documents are reported per item and skipped; a database failure
        aborts the whole batch and propagates.
        """
        result = BulkIndexResult()
        valid: list[SearchDocument] = []
        for document in documents:
            problem = self._validate_document(document)
            if problem:
                logger.warning(f"Skipping document {document.id}: {problem}")
                result.errors[document.id] = problem
            else:
                valid.append(document)

        if not valid:
            return result

        if self._semantic_enabled:
            await self._ensure_vector_tables()

        async with db.scoped_session(self.session_maker) as session:
            if self._semantic_enabled:
                await self._ensure_sqlite_vec_loaded(session)
            for document in valid:
                await self._write_document(session, document)
                result.indexed.append(document.id)

        logger.debug(f"Bulk indexed {len(result.indexed)} documents, {len(result.errors)} errors")
        return result

    async def delete_document(self, doc_id: str) -> bool:
        """Delete a document. Returns False when nothing was stored under doc_id."""
        if self._semantic_enabled:
            await self._ensure_vector_tables()

        async with db.scoped_session(self.session_maker) as session:
            if self._semantic_enabled:
                await self._ensure_sqlite_vec_loaded(session)
            deleted = await self._delete_rows(session, doc_id)
        return deleted > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def count(self) -> int:
        async with db.scoped_session(self.session_maker) as session:
            result = await session.execute(text("SELECT COUNT(*) FROM search_document"))
            return int(result.scalar_one())

    async def get_document(self, doc_id: str) -> Optional[SearchDocument]:
        """Load a stored document including its vectors."""
        if self._semantic_enabled:
            await self._ensure_vector_tables()

        async with db.scoped_session(self.session_maker) as session:
            result = await session.execute(
                text(
                    "SELECT rowid AS row_id, * FROM search_document "
                    "WHERE doc_id = :doc_id ORDER BY rowid DESC LIMIT 1"
                ),
                {"doc_id": doc_id},
            )
            row = result.fetchone()
            if row is None:
                return None

            document = SearchDocument.from_row(row)
            if not self._semantic_enabled:
                return document

            await self._ensure_sqlite_vec_loaded(session)
            for field_name, table_name in VECTOR_FIELD_TABLES.items():
                vector_result = await session.execute(
                    text(
                        f"SELECT vec_to_json(embedding) FROM {table_name} WHERE rowid = :rowid"
                    ),
                    {"rowid": row.row_id},
                )
                vector_json = vector_result.scalar()
                if vector_json is not None:
                    setattr(document, field_name, json.loads(vector_json))
            return document

    async def execute_query(self, query, params: dict):
        """Execute a raw SQL query."""
        async with db.scoped_session(self.session_maker) as session:
            return await session.execute(query, params)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _build_match_expression(self, search_text: str, columns: Iterable[str]) -> Optional[str]:
        """Build an FTS5 expression matching any term of search_text in the given columns.

        Terms are reduced to word characters and double quoted, so FTS5
        operators and punctuation in user input never reach the parser.
        """
        terms: list[str] = []
        for token in TOKEN_PATTERN.findall(search_text.lower()):
            if token not in terms:
                terms.append(token)
        if not terms:
            return None

        column_list = " ".join(columns)
        quoted = " OR ".join(f'"{term}"' for term in terms)
        return f"{{{column_list}}} : ({quoted})"

    async def _lexical_scores(
        self, session: AsyncSession, clause: LexicalClause
    ) -> dict[int, float]:
        """Score rows matching a lexical clause. Higher is better."""
        expression = self._build_match_expression(clause.text, clause.fields.keys())
        if expression is None:
            return {}

        weights = ", ".join(
            str(float(clause.fields.get(column, 0.0))) for column in SEARCH_DOCUMENT_COLUMNS
        )
        sql = (
            f"SELECT rowid AS row_id, bm25(search_document, {weights}) AS lexical_rank "
            "FROM search_document WHERE search_document MATCH :expression "
            "ORDER BY lexical_rank LIMIT :limit"
        )
        logger.trace(f"Lexical clause {expression} boost={clause.boost}")
        try:
            result = await session.execute(
                text(sql), {"expression": expression, "limit": LEXICAL_SCAN_LIMIT}
            )
        except SAOperationalError as e:
            if "fts5: syntax error" in str(e).lower():  # pragma: no cover
                logger.warning(f"FTS5 syntax error for search text: {clause.text}, error: {e}")
                return {}
            raise

        # bm25() is negative, lower meaning more relevant
        return {row.row_id: -row.lexical_rank * clause.boost for row in result.fetchall()}

    async def _knn_scores(
        self,
        session: AsyncSession,
        clause: KnnClause,
        admitted: Optional[dict[int, Optional[str]]],
    ) -> dict[int, float]:
        """Score the k nearest admitted rows for one perspective vector field.

        Unfiltered queries use the vec0 KNN index over num_candidates rows.
        When filters restrict the admitted rows, distances are computed over
        exactly those rows so non-matching neighbours cannot crowd them out.
        """
        if len(clause.vector) != self._vector_dimensions:
            raise ValueError(
                f"Query vector has {len(clause.vector)} dimensions, "
                f"expected {self._vector_dimensions}"
            )

        table_name = VECTOR_FIELD_TABLES[clause.field]
        if admitted is None:
            result = await session.execute(
                text(
                    f"SELECT rowid AS row_id, distance FROM {table_name} "
                    "WHERE embedding MATCH :query_embedding AND k = :candidates "
                    "ORDER BY distance ASC"
                ),
                {
                    "query_embedding": json.dumps(clause.vector),
                    "candidates": min(clause.num_candidates, MAX_VECTOR_K),
                },
            )
        else:
            if not admitted:
                return {}
            result = await session.execute(
                text(
                    "SELECT row_id, distance FROM ("
                    f"  SELECT rowid AS row_id, "
                    "    vec_distance_cosine(embedding, vec_f32(:query_embedding)) AS distance "
                    f"  FROM {table_name} "
                    "  WHERE rowid IN (SELECT value FROM json_each(:admitted_rowids))"
                    ") ORDER BY distance ASC, row_id ASC LIMIT :k"
                ),
                {
                    "query_embedding": json.dumps(clause.vector),
                    "admitted_rowids": json.dumps(list(admitted)),
                    "k": clause.k,
                },
            )

        scores: dict[int, float] = {}
        for row in result.fetchall():
            scores[row.row_id] = self._distance_to_similarity(row.distance) * clause.boost
            if len(scores) >= clause.k:
                break
        return scores

    async def _admitted_rows(
        self, session: AsyncSession, filters: SearchFilters
    ) -> dict[int, Optional[str]]:
        """Rows passing every structural filter, mapped to their created_at value."""
        conditions = []
        params: dict = {}

        if filters.model:
            conditions.append("ai_model = :model")
            params["model"] = filters.model

        if filters.min_rate > 0:
            conditions.append("CAST(reproduction_rate AS INTEGER) >= :min_rate")
            params["min_rate"] = filters.min_rate

        if filters.tag:
            conditions.append(
                "EXISTS (SELECT 1 FROM json_each(search_document.tags_json) "
                "WHERE json_each.value = :tag)"
            )
            params["tag"] = filters.tag

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        result = await session.execute(
            text(f"SELECT rowid AS row_id, created_at FROM search_document WHERE {where_clause}"),
            params,
        )
        return {row.row_id: row.created_at for row in result.fetchall()}

    async def _load_documents(
        self, session: AsyncSession, row_ids: list[int]
    ) -> dict[int, SearchDocument]:
        if not row_ids:
            return {}
        params = {f"rowid_{idx}": rowid for idx, rowid in enumerate(row_ids)}
        placeholders = ", ".join(f":rowid_{idx}" for idx in range(len(row_ids)))
        result = await session.execute(
            text(
                f"SELECT rowid AS row_id, * FROM search_document WHERE rowid IN ({placeholders})"
            ),
            params,
        )
        return {row.row_id: SearchDocument.from_row(row) for row in result.fetchall()}

    async def search(self, query: StoreQuery) -> StoreSearchResult:
        """Run a StoreQuery and return up to query.size hits with raw scores.

        - match_all: every admitted row is a hit with constant score 1.0
        - otherwise: rows hit by any should/knn clause, scores summed
        total is the number of hits before truncation to size.
        """
        use_vectors = bool(query.knn) and self._semantic_enabled and not query.match_all
        if query.knn and not self._semantic_enabled:
            logger.debug("Semantic search disabled, skipping vector clauses")
        if use_vectors:
            await self._ensure_vector_tables()

        async with db.scoped_session(self.session_maker) as session:
            needs_rows = (
                query.filters.active or query.match_all or query.sort == StoreSort.RECENCY
            )
            admitted = await self._admitted_rows(session, query.filters) if needs_rows else None

            # A required clause with no searchable terms constrains nothing
            must = query.must
            if must is not None and self._build_match_expression(
                must.text, must.fields.keys()
            ) is None:
                must = None

            if must is not None:
                required = await self._lexical_scores(session, must)
                if admitted is None:
                    admitted = {rowid: None for rowid in required}
                else:
                    admitted = {
                        rowid: created for rowid, created in admitted.items() if rowid in required
                    }

            scores: dict[int, float] = defaultdict(float)
            if query.match_all:
                assert admitted is not None
                for rowid in admitted:
                    scores[rowid] = 1.0
            else:
                for clause in query.should:
                    for rowid, score in (await self._lexical_scores(session, clause)).items():
                        if admitted is None or rowid in admitted:
                            scores[rowid] += score

                if use_vectors:
                    await self._ensure_sqlite_vec_loaded(session)
                    for knn_clause in query.knn:
                        knn_scores = await self._knn_scores(session, knn_clause, admitted)
                        for rowid, score in knn_scores.items():
                            scores[rowid] += score

            if query.sort == StoreSort.RECENCY:
                assert admitted is not None
                # Stable sorts: rowid ascending breaks created_at ties
                ordered = sorted(scores)
                ordered.sort(key=lambda rowid: admitted.get(rowid) or "", reverse=True)
            else:
                ordered = sorted(scores, key=lambda rowid: (-scores[rowid], rowid))

            page = ordered[: query.size]
            documents = await self._load_documents(session, page)

        hits = []
        for rowid in page:
            document = documents.get(rowid)
            if document is None:  # pragma: no cover
                continue
            document.score = scores[rowid]
            hits.append(document)

        logger.trace(f"Store search returned {len(hits)} of {len(ordered)} hits")
        return StoreSearchResult(hits=hits, total=len(ordered))
