from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, TypeVar

from tracker.core.config import TrackerConfig
from tracker.core.exceptions import NotFoundError, RepositoryError
from tracker.core.short_ttl_cache import ShortTTLCache
from tracker.models.schemas import JournalUsage, StatusCounts
from tracker.models.submission import SubmissionStatus, normalize_status
from tracker.services.ports import SubmissionRepository

logger = logging.getLogger("tracker.stats")

T = TypeVar("T")

_CACHE_PREFIX = "stats:"

_STATUS_FIELDS = {
    SubmissionStatus.EM_AVALIACAO.value: "under_review",
    SubmissionStatus.APROVADO.value: "approved",
    SubmissionStatus.REJEITADO.value: "rejected",
    SubmissionStatus.REVISAO_SOLICITADA.value: "revision_requested",
    SubmissionStatus.SUBMETIDO_NOVAMENTE.value: "resubmitted",
}


def count_statuses(statuses: Iterable[str]) -> StatusCounts:
    counts = StatusCounts()
    for raw in statuses:
        counts.total += 1
        field = _STATUS_FIELDS.get(normalize_status(raw) or "")
        if field:
            setattr(counts, field, getattr(counts, field) + 1)
    return counts


class StatsService:
    """
    Dashboard aggregates (status counts, most used journals).

    Results live in a ShortTTLCache; the lifecycle service calls
    invalidate_aggregate_stats() after every status change so the next read
    recomputes them.
    """

    def __init__(
        self,
        repository: SubmissionRepository,
        config: Optional[TrackerConfig] = None,
        *,
        cache: Optional[ShortTTLCache] = None,
    ) -> None:
        self._repo = repository
        self._config = config or TrackerConfig.from_env()
        self._cache = cache or ShortTTLCache(
            max_entries=self._config.stats_cache_max_entries,
            default_ttl_sec=self._config.stats_cache_ttl_sec,
        )

    def invalidate_aggregate_stats(self) -> None:
        dropped = self._cache.delete_prefix(_CACHE_PREFIX)
        logger.debug("aggregate stats invalidated (%d entries)", dropped)

    def dashboard_stats(self) -> StatusCounts:
        try:
            return self._cached(
                f"{_CACHE_PREFIX}dashboard",
                lambda: count_statuses(self._repo.list_submission_statuses()),
            )
        except RepositoryError as e:
            # 统计失败不阻断首页，返回全 0 且不写缓存
            logger.warning("dashboard stats query failed: %s", e)
            return StatusCounts()

    def journal_stats(self, journal_id: str) -> StatusCounts:
        if self._repo.get_journal(journal_id) is None:
            raise NotFoundError("Journal", journal_id)
        return self._cached(
            f"{_CACHE_PREFIX}journal:{journal_id}",
            lambda: count_statuses(self._repo.list_submission_statuses(journal_id)),
        )

    def most_used_journals(self, limit: int = 10) -> List[JournalUsage]:
        n = max(0, int(limit))
        return self._cached(f"{_CACHE_PREFIX}most_used:{n}", lambda: self._load_most_used(n))

    def _load_most_used(self, limit: int) -> List[JournalUsage]:
        by_journal = self._repo.count_submissions_by_journal()
        usage = [
            JournalUsage(journal=j, total_submissions=int(by_journal.get(j.id, 0)))
            for j in self._repo.list_journals()
        ]
        usage.sort(key=lambda u: u.total_submissions, reverse=True)
        return usage[:limit]

    def _cached(self, key: str, loader: Callable[[], T]) -> T:
        if not self._config.stats_cache_enabled:
            return loader()
        return self._cache.get_or_set(key, loader)
