"""Repository for experiments, the system of record behind the search index."""

from datetime import datetime
from typing import Optional, Sequence

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prompt_commons import db
from prompt_commons.models.experiment import Experiment, ExperimentTag, ExperimentVersion
from prompt_commons.schemas.experiment import ExperimentRecord


class ExperimentRepository:
    """Reads and writes experiments with their active version and tags.

    Only experiments with an active version are visible to the search
    layer: they are what count(), find_batch_after() and get_record() see.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    def _active_select(self):
        return select(Experiment, ExperimentVersion).join(
            ExperimentVersion, Experiment.active_version_id == ExperimentVersion.id
        )

    @staticmethod
    def _to_record(experiment: Experiment, version: ExperimentVersion) -> ExperimentRecord:
        return ExperimentRecord(
            id=experiment.id,
            title=experiment.title,
            description=version.prompt_description or "",
            prompt_text=version.prompt_text or "",
            ai_model=version.ai_model or "",
            tags=[tag.tag_name for tag in version.tags],
            reproduction_rate=version.reproduction_rate or 0,
            version_number=version.version_number,
            created_at=experiment.created_at,
            updated_at=experiment.updated_at,
        )

    async def create(
        self,
        title: str,
        prompt_text: str,
        ai_model: Optional[str] = None,
        description: Optional[str] = None,
        tags: Sequence[str] = (),
        reproduction_rate: int = 0,
        created_at: Optional[datetime] = None,
    ) -> ExperimentRecord:
        """Create an experiment with a first version that is immediately active."""
        async with db.scoped_session(self.session_maker) as session:
            experiment = Experiment(title=title)
            if created_at is not None:
                experiment.created_at = created_at
                experiment.updated_at = created_at
            session.add(experiment)
            await session.flush()

            version = ExperimentVersion(
                experiment_id=experiment.id,
                version_number="1.0",
                prompt_text=prompt_text,
                prompt_description=description,
                ai_model=ai_model,
                reproduction_rate=reproduction_rate,
                tags=[ExperimentTag(tag_name=tag) for tag in tags],
            )
            session.add(version)
            await session.flush()

            experiment.active_version_id = version.id
            await session.flush()
            logger.debug(f"Created experiment {experiment.id} version {version.id}")
            return self._to_record(experiment, version)

    async def add_version(
        self,
        experiment_id: int,
        version_number: str,
        prompt_text: str,
        ai_model: Optional[str] = None,
        description: Optional[str] = None,
        tags: Sequence[str] = (),
        reproduction_rate: int = 0,
        activate: bool = True,
    ) -> Optional[ExperimentRecord]:
        """Add a version to an experiment, making it active unless activate is False.

        Returns the experiment's record after the change, or None if it does not exist.
        """
        async with db.scoped_session(self.session_maker) as session:
            experiment = await session.get(Experiment, experiment_id)
            if experiment is None:
                return None

            version = ExperimentVersion(
                experiment_id=experiment_id,
                version_number=version_number,
                prompt_text=prompt_text,
                prompt_description=description,
                ai_model=ai_model,
                reproduction_rate=reproduction_rate,
                tags=[ExperimentTag(tag_name=tag) for tag in tags],
            )
            session.add(version)
            await session.flush()

            if activate:
                experiment.active_version_id = version.id
                await session.flush()

        return await self.get_record(experiment_id)

    async def count(self) -> int:
        """Number of experiments with an active version."""
        async with db.scoped_session(self.session_maker) as session:
            result = await session.execute(
                select(func.count(Experiment.id)).where(Experiment.active_version_id.is_not(None))
            )
            return int(result.scalar_one())

    async def find_batch_after(
        self, cursor: Optional[int], limit: int
    ) -> list[ExperimentRecord]:
        """Return up to limit experiments with id greater than cursor, ascending by id."""
        query = self._active_select()
        if cursor is not None:
            query = query.where(Experiment.id > cursor)
        query = query.order_by(Experiment.id.asc()).limit(limit)

        async with db.scoped_session(self.session_maker) as session:
            result = await session.execute(query)
            return [self._to_record(experiment, version) for experiment, version in result.all()]

    async def get_record(self, experiment_id: int) -> Optional[ExperimentRecord]:
        query = self._active_select().where(Experiment.id == experiment_id)
        async with db.scoped_session(self.session_maker) as session:
            row = (await session.execute(query)).first()
            if row is None:
                return None
            experiment, version = row
            return self._to_record(experiment, version)

    async def find_by_ids(self, experiment_ids: Sequence[int]) -> dict[int, ExperimentRecord]:
        """Load records for the given ids. Missing ids are absent from the result."""
        if not experiment_ids:
            return {}
        query = self._active_select().where(Experiment.id.in_(list(experiment_ids)))
        async with db.scoped_session(self.session_maker) as session:
            result = await session.execute(query)
            return {
                experiment.id: self._to_record(experiment, version)
                for experiment, version in result.all()
            }

    async def find_ids(self) -> list[int]:
        """Ids of all experiments with an active version, ascending."""
        async with db.scoped_session(self.session_maker) as session:
            result = await session.execute(
                select(Experiment.id)
                .where(Experiment.active_version_id.is_not(None))
                .order_by(Experiment.id.asc())
            )
            return list(result.scalars().all())

    async def delete(self, experiment_id: int) -> bool:
        async with db.scoped_session(self.session_maker) as session:
            result = await session.execute(delete(Experiment).where(Experiment.id == experiment_id))
            return result.rowcount > 0
