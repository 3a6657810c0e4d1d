"""Service that builds search documents from experiments and keeps the index in step."""

from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger

from prompt_commons.config import PromptCommonsConfig
from prompt_commons.providers.embedding_provider import EmbeddingProvider
from prompt_commons.providers.errors import EmbeddingError
from prompt_commons.repository.experiment_repository import ExperimentRepository
from prompt_commons.repository.search_document import SearchDocument
from prompt_commons.repository.search_repository import SearchRepository
from prompt_commons.schemas.experiment import ExperimentRecord
from prompt_commons.services.perspective_generator import PerspectiveGenerator
from prompt_commons.services.task_queue import SequentialTaskQueue


@dataclass
class BulkReindexReport:
    """Outcome of a full-corpus reindex.

    Attributes:
        total_count: Experiments in the system of record when the run started
        synced_count: Documents upserted into the search index
        error_count: Experiments that could not be indexed
        batch_sizes: Number of experiments read per batch, in order
        failed_ids: Ids of experiments counted in error_count
    """

    total_count: int = 0
    synced_count: int = 0
    error_count: int = 0
    batch_sizes: list[int] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error_count == 0


class IndexService:
    """Indexes experiments: perspectives, three sequential embeddings, then an upsert."""

    def __init__(
        self,
        search_repository: SearchRepository,
        perspective_generator: PerspectiveGenerator,
        embedding_provider: Optional[EmbeddingProvider],
        app_config: PromptCommonsConfig,
        task_queue: Optional[SequentialTaskQueue] = None,
    ):
        self.repository = search_repository
        self.perspective_generator = perspective_generator
        self.embedding_provider = embedding_provider
        self.app_config = app_config
        self.task_queue = task_queue or SequentialTaskQueue(app_config.embedding_call_delay)

    @property
    def semantic_active(self) -> bool:
        """True when vectors are both produced and stored."""
        return self.embedding_provider is not None and self.repository.semantic_enabled

    async def _embed(self, text: str, document_id: str, slot: str) -> Optional[list[float]]:
        if self.embedding_provider is None or not text.strip():
            return None
        try:
            return await self.task_queue.run(self.embedding_provider.embed, text)
        except EmbeddingError as e:
            logger.warning(f"Embedding failed for document {document_id} ({slot}): {e}")
            return None

    async def build_document(self, record: ExperimentRecord) -> SearchDocument:
        """Build the full search document for an experiment.

        Perspective embeddings are issued one after another through the task
        queue. A failed slot is left as None; the document still indexes.
        """
        perspectives = await self.perspective_generator.generate(
            record.title, record.prompt_text, record.ai_model
        )
        document = SearchDocument(
            id=record.document_id,
            title=record.title,
            prompt_text=record.prompt_text,
            description=record.description,
            ai_model=record.ai_model,
            tags=list(record.tags),
            reproduction_rate=record.reproduction_rate,
            created_at=record.created_at,
            updated_at=record.updated_at,
            text_problem=perspectives.problem,
            text_tech=perspectives.tech,
            text_solution=perspectives.solution,
        )

        if self.semantic_active:
            document.vec_problem = await self._embed(perspectives.problem, document.id, "problem")
            document.vec_tech = await self._embed(perspectives.tech, document.id, "tech")
            document.vec_solution = await self._embed(
                perspectives.solution, document.id, "solution"
            )
        return document

    async def index_document(self, record: ExperimentRecord) -> SearchDocument:
        """Index an experiment, replacing any existing document with the same id."""
        document = await self.build_document(record)
        await self.repository.index_document(document)
        logger.info(
            f"Indexed experiment {document.id} with {document.embedded_count}/3 perspective vectors"
        )
        return document

    async def update_document(self, record: ExperimentRecord) -> SearchDocument:
        """Re-index an experiment after its active version changed."""
        return await self.index_document(record)

    async def delete_document(self, doc_id: str) -> bool:
        """Remove a document. Deleting an id that is not indexed also succeeds."""
        deleted = await self.repository.delete_document(str(doc_id))
        if not deleted:
            logger.debug(f"Document {doc_id} was not indexed, nothing to delete")
        return True

    async def reset_index(self) -> None:
        """Drop and recreate the index schema. Destroys every stored document."""
        await self.repository.reset_index()

    async def bulk_reindex(
        self,
        experiment_repository: ExperimentRepository,
        progress_callback: Optional[Callable[[BulkReindexReport], None]] = None,
    ) -> BulkReindexReport:
        """Rebuild every document, walking the system of record by ascending id.

        Per-item failures are counted and skipped. A store failure aborts the
        run; batches already upserted stay in the index.
        """
        batch_size = self.app_config.reindex_batch_size
        report = BulkReindexReport(total_count=await experiment_repository.count())
        logger.info(f"Starting bulk reindex of {report.total_count} experiments")

        cursor: Optional[int] = None
        while True:
            batch = await experiment_repository.find_batch_after(cursor, batch_size)
            if not batch:
                break
            cursor = batch[-1].id
            report.batch_sizes.append(len(batch))

            documents: list[SearchDocument] = []
            for record in batch:
                try:
                    document = await self.build_document(record)
                except Exception as e:
                    logger.warning(f"Failed to build document for experiment {record.id}: {e}")
                    report.error_count += 1
                    report.failed_ids.append(record.document_id)
                    continue

                if self.semantic_active and document.embedded_count == 0:
                    logger.warning(f"No perspective vectors for experiment {record.id}, skipping")
                    report.error_count += 1
                    report.failed_ids.append(record.document_id)
                    continue
                documents.append(document)

            result = await self.repository.bulk_index_documents(documents)
            report.synced_count += len(result.indexed)
            report.error_count += len(result.errors)
            report.failed_ids.extend(result.errors.keys())

            logger.info(
                f"Reindexed batch {len(report.batch_sizes)}: "
                f"{report.synced_count}/{report.total_count} synced, {report.error_count} errors"
            )
            if progress_callback:
                progress_callback(report)

        logger.info(
            f"Bulk reindex complete: total={report.total_count} synced={report.synced_count} "
            f"errors={report.error_count}"
        )
        return report
