from prompt_commons.sync.sync_service import (
    ConsistencyReport,
    SampleCheck,
    SearchHealth,
    SyncService,
)

__all__ = ["ConsistencyReport", "SampleCheck", "SearchHealth", "SyncService"]
