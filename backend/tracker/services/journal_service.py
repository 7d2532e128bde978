from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from tracker.core.exceptions import NotFoundError
from tracker.models.schemas import Journal, JournalCreate, JournalUpdate
from tracker.services.ports import StatsInvalidator, SubmissionRepository

logger = logging.getLogger("tracker.journals")


class JournalService:
    """
    期刊目录的读写。

    中文注释: 目录变动会影响 "most used journals" 统计里带出的期刊信息，写操作后清一次统计缓存。
    """

    def __init__(self, repository: SubmissionRepository, *, stats: Optional[StatsInvalidator] = None) -> None:
        self._repo = repository
        self._stats = stats

    def get(self, journal_id: str) -> Journal:
        journal = self._repo.get_journal(journal_id)
        if journal is None:
            raise NotFoundError("Journal", journal_id)
        return journal

    def list(self) -> List[Journal]:
        return sorted(self._repo.list_journals(), key=lambda j: j.name.lower())

    def search(self, query: str) -> List[Journal]:
        """Substring match on name / ISSN / area; a blank query lists the whole catalog."""
        q = (query or "").strip()
        if not q:
            return self.list()
        return self._repo.search_journals(q)

    def create(self, data: JournalCreate) -> Journal:
        journal = Journal(id=str(uuid.uuid4()), **data.model_dump())
        self._repo.insert_journal(journal)
        self._invalidate()
        logger.info("Journal %s created (%s)", journal.id, journal.name)
        return journal

    def update(self, journal_id: str, data: JournalUpdate) -> Journal:
        current = self.get(journal_id)
        changes = data.field_changes()
        if not changes:
            return current
        self._repo.update_journal(journal_id, changes)
        self._invalidate()
        return self.get(journal_id)

    def delete(self, journal_id: str) -> None:
        self.get(journal_id)
        self._repo.delete_journal(journal_id)
        self._invalidate()
        logger.info("Journal %s deleted", journal_id)

    def _invalidate(self) -> None:
        if self._stats is not None:
            self._stats.invalidate_aggregate_stats()
