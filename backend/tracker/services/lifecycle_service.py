from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from tracker.core.exceptions import InvalidStatusError, InvalidTransitionError, NotFoundError
from tracker.models.schemas import StatusHistoryEntry, Submission
from tracker.models.submission import SubmissionStatus, normalize_status
from tracker.services.ports import StatsInvalidator, SubmissionRepository

logger = logging.getLogger("tracker.lifecycle")

CREATION_NOTE = "Submission created"


def default_note(status: SubmissionStatus) -> str:
    return f"Status changed to {status.value}"


class SubmissionLifecycleService:
    """
    投稿状态机与状态历史写入服务。

    中文注释:
    - 每次状态变化（包括创建）都追加一条不可变的 StatusHistoryEntry；
    - 先写 submission.status，再追加历史，保证 status == history[0].status；
    - 状态变化后调用注入的 stats 端口让 dashboard 统计失效；
    - 并发写同一稿件时 last-write-wins，这里不做 CAS。
    """

    def __init__(
        self,
        repository: SubmissionRepository,
        *,
        stats: Optional[StatsInvalidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repo = repository
        self._stats = stats
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_submission(self, submission_id: str) -> Submission:
        submission = self._repo.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        return submission

    def record_creation(self, submission_id: str) -> StatusHistoryEntry:
        """Creation is modeled as a transition into EM_AVALIACAO."""
        submission = self.get_submission(submission_id)
        return self._apply(submission, SubmissionStatus.initial(), CREATION_NOTE)

    def transition(
        self,
        submission_id: str,
        new_status: str | SubmissionStatus,
        note: Optional[str] = None,
    ) -> StatusHistoryEntry:
        to_norm = normalize_status(new_status)
        if to_norm is None:
            raise InvalidStatusError(new_status)
        target = SubmissionStatus(to_norm)

        submission = self.get_submission(submission_id)

        from_status = submission.status.value
        if not SubmissionStatus.can_transition(from_status, target.value):
            raise InvalidTransitionError(from_status, target.value, SubmissionStatus.allowed_next(from_status))

        # note 为空字符串时同样使用默认说明
        return self._apply(submission, target, note or default_note(target))

    def history(self, submission_id: str) -> List[StatusHistoryEntry]:
        self.get_submission(submission_id)
        entries = self._repo.list_history(submission_id)
        return sorted(entries, key=lambda e: e.changed_at, reverse=True)

    def _apply(self, submission: Submission, target: SubmissionStatus, note: str) -> StatusHistoryEntry:
        entry = StatusHistoryEntry(
            status=target,
            changed_at=self._clock(),
            note=note,
            submission_id=submission.id,
        )
        self._repo.set_submission_status(submission.id, target)
        self._repo.append_history(submission.id, entry)

        if self._stats is not None:
            self._stats.invalidate_aggregate_stats()

        logger.info(
            "Submission %s status %s -> %s (%s)",
            submission.id,
            submission.status.value,
            target.value,
            note,
        )
        return entry
