"""Service for keeping the search index consistent with the system of record."""

import random
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from prompt_commons.config import PromptCommonsConfig
from prompt_commons.repository.experiment_repository import ExperimentRepository
from prompt_commons.repository.search_document import SearchDocument
from prompt_commons.repository.search_repository import SearchRepository
from prompt_commons.schemas.experiment import ExperimentRecord
from prompt_commons.services.index_service import BulkReindexReport, IndexService

MISSING_DOCUMENT_ERROR = "missing from search index"


@dataclass
class SampleCheck:
    """Field-by-field comparison of one experiment against its search document.

    Attributes:
        id: Experiment id
        errors: One message per mismatched field, empty when consistent
    """

    id: str
    errors: List[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.errors


@dataclass
class ConsistencyReport:
    """Point-in-time comparison of the system of record and the search index.

    Attributes:
        source_count: Experiments with an active version
        index_count: Documents in the search index
        samples: Per-id results for the randomly sampled experiments
    """

    source_count: int = 0
    index_count: int = 0
    samples: List[SampleCheck] = field(default_factory=list)

    @property
    def counts_match(self) -> bool:
        return self.source_count == self.index_count

    @property
    def failed_samples(self) -> List[SampleCheck]:
        return [sample for sample in self.samples if not sample.consistent]

    @property
    def passed(self) -> bool:
        return self.counts_match and not self.failed_samples


@dataclass
class SearchHealth:
    """Reachability of the search index."""

    connected: bool
    index_name: str
    document_count: Optional[int] = None
    semantic_enabled: bool = False
    error: Optional[str] = None


class SyncService:
    """Resyncs the search index from the system of record and verifies the result."""

    def __init__(
        self,
        app_config: PromptCommonsConfig,
        index_service: IndexService,
        search_repository: SearchRepository,
        experiment_repository: ExperimentRepository,
        rng: Optional[random.Random] = None,
    ):
        self.app_config = app_config
        self.index_service = index_service
        self.search_repository = search_repository
        self.experiment_repository = experiment_repository
        self._rng = rng or random.Random()

    async def resync(self, reset: bool = True) -> BulkReindexReport:
        """Rebuild the index from the system of record.

        With reset, the index is dropped first so documents for deleted
        experiments disappear too.
        """
        if reset:
            await self.index_service.reset_index()
        else:
            await self.search_repository.init_search_index()
        return await self.index_service.bulk_reindex(self.experiment_repository)

    def compare(self, record: ExperimentRecord, document: Optional[SearchDocument]) -> SampleCheck:
        """Diff one experiment against its stored document."""
        check = SampleCheck(id=record.document_id)
        if document is None:
            check.errors.append(MISSING_DOCUMENT_ERROR)
            return check

        if document.title != record.title:
            check.errors.append(f"title mismatch: '{record.title}' != '{document.title}'")
        if document.prompt_text != record.prompt_text:
            check.errors.append("prompt_text mismatch")
        if document.reproduction_rate != record.reproduction_rate:
            check.errors.append(
                f"reproduction_rate mismatch: {record.reproduction_rate} != "
                f"{document.reproduction_rate}"
            )

        if self.search_repository.semantic_enabled:
            dimensions = self.search_repository.vector_dimensions
            vectors = document.vectors()
            if not any(vectors.values()):
                check.errors.append("no perspective vectors stored")
            for field_name, vector in vectors.items():
                if vector is not None and len(vector) != dimensions:
                    check.errors.append(
                        f"{field_name} has {len(vector)} dimensions, expected {dimensions}"
                    )
        return check

    async def verify_consistency(self, sample_size: Optional[int] = None) -> ConsistencyReport:
        """Compare counts, then diff a random sample of experiments field by field."""
        sample_size = sample_size or self.app_config.consistency_sample_size
        report = ConsistencyReport(
            source_count=await self.experiment_repository.count(),
            index_count=await self.search_repository.count(),
        )
        logger.info(
            f"Consistency check: {report.source_count} experiments, "
            f"{report.index_count} indexed documents"
        )

        ids = await self.experiment_repository.find_ids()
        sampled = self._rng.sample(ids, min(sample_size, len(ids)))
        for experiment_id in sampled:
            record = await self.experiment_repository.get_record(experiment_id)
            if record is None:  # pragma: no cover
                continue
            document = await self.search_repository.get_document(record.document_id)
            check = self.compare(record, document)
            if not check.consistent:
                logger.warning(f"Experiment {check.id} inconsistent: {'; '.join(check.errors)}")
            report.samples.append(check)

        logger.info(
            f"Consistency check {'passed' if report.passed else 'failed'}: "
            f"{len(report.failed_samples)}/{len(report.samples)} samples inconsistent"
        )
        return report

    async def check_health(self) -> SearchHealth:
        """Report whether the search index answers queries."""
        health = SearchHealth(
            connected=False,
            index_name=self.app_config.search_index_name,
            semantic_enabled=self.search_repository.semantic_enabled,
        )
        try:
            health.document_count = await self.search_repository.count()
            health.connected = True
        except Exception as e:
            logger.error(f"Search index health check failed: {e}")
            health.error = str(e)
        return health
