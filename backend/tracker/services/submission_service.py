from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from tracker.core.exceptions import InvalidStatusError, NotFoundError
from tracker.models.schemas import Submission, SubmissionCreate, SubmissionDetail, SubmissionUpdate
from tracker.models.submission import SubmissionStatus, normalize_status
from tracker.services.lifecycle_service import SubmissionLifecycleService
from tracker.services.ports import StatsInvalidator, SubmissionRepository

logger = logging.getLogger("tracker.submissions")

RECENT_SUBMISSIONS_LIMIT = 10


class SubmissionService:
    """
    投稿的创建、查询、字段编辑与删除。

    中文注释:
    - 创建时同步写入作者、备选期刊，并通过生命周期服务写入首条历史（EM_AVALIACAO）；
    - 编辑里带 status 的部分一律交给 SubmissionLifecycleService，不直接改字段；
    - 列表查询按 submitted_at 倒序（最新在前）；
    - 删除时先删作者和备选期刊，再删投稿本身。
    """

    def __init__(
        self,
        repository: SubmissionRepository,
        lifecycle: SubmissionLifecycleService,
        *,
        stats: Optional[StatsInvalidator] = None,
    ) -> None:
        self._repo = repository
        self._lifecycle = lifecycle
        self._stats = stats

    def _require_journal(self, journal_id: str) -> None:
        if self._repo.get_journal(journal_id) is None:
            raise NotFoundError("Journal", journal_id)

    # === 查询 ===

    def get(self, submission_id: str) -> Submission:
        return self._lifecycle.get_submission(submission_id)

    def list(self) -> List[Submission]:
        return self._repo.list_submissions()

    def recent(self, limit: int = RECENT_SUBMISSIONS_LIMIT) -> List[Submission]:
        return self._repo.list_submissions(limit=max(0, int(limit)))

    def by_status(self, status: str | SubmissionStatus) -> List[Submission]:
        norm = normalize_status(status)
        if norm is None:
            raise InvalidStatusError(status)
        return self._repo.list_submissions(status=SubmissionStatus(norm))

    def by_journal(self, journal_id: str) -> List[Submission]:
        return self._repo.list_submissions(journal_id=journal_id)

    def by_creator(self, creator_id: str) -> List[Submission]:
        return self._repo.list_submissions(creator_id=creator_id)

    def detail(self, submission_id: str) -> SubmissionDetail:
        submission = self.get(submission_id)
        return SubmissionDetail(
            submission=submission,
            journal=self._repo.get_journal(submission.journal_id),
            authors=sorted(self._repo.list_authors(submission_id), key=lambda a: a.order),
            alternative_journals=sorted(
                self._repo.list_alternative_journals(submission_id), key=lambda a: a.priority
            ),
            reviews=sorted(self._repo.list_reviews(submission_id), key=lambda r: r.received_at, reverse=True),
            history=sorted(self._repo.list_history(submission_id), key=lambda e: e.changed_at, reverse=True),
        )

    # === 写操作 ===

    def create(self, data: SubmissionCreate, *, creator_id: Optional[str] = None) -> Submission:
        self._require_journal(data.journal_id)
        if data.alternate_journal_id:
            self._require_journal(data.alternate_journal_id)
        if data.original_submission_id and self._repo.get_submission(data.original_submission_id) is None:
            raise NotFoundError("Submission", data.original_submission_id)

        submission = Submission(
            id=str(uuid.uuid4()),
            title=data.title,
            abstract=data.abstract,
            keywords=data.keywords,
            status=SubmissionStatus.initial(),
            submitted_at=datetime.now(timezone.utc),
            journal_id=data.journal_id,
            alternate_journal_id=data.alternate_journal_id,
            original_submission_id=data.original_submission_id,
            creator_id=creator_id,
            action_plan=data.action_plan,
        )
        self._repo.insert_submission(submission)

        if data.authors:
            self._repo.replace_authors(submission.id, data.authors)
        if data.alternative_journals:
            self._repo.replace_alternative_journals(submission.id, data.alternative_journals)

        self._lifecycle.record_creation(submission.id)
        logger.info("Submission %s created for journal %s", submission.id, submission.journal_id)
        return submission

    def resubmit(
        self,
        original_id: str,
        *,
        journal_id: str,
        creator_id: Optional[str] = None,
        action_plan: Optional[str] = None,
    ) -> Submission:
        """New submission to another journal, linked back to the original."""
        original = self._lifecycle.get_submission(original_id)
        data = SubmissionCreate(
            title=original.title,
            abstract=original.abstract,
            keywords=original.keywords or original.title,
            journal_id=journal_id,
            original_submission_id=original.id,
            action_plan=action_plan or original.action_plan,
        )
        return self.create(data, creator_id=creator_id or original.creator_id)

    def update(self, submission_id: str, data: SubmissionUpdate) -> Submission:
        self._lifecycle.get_submission(submission_id)

        changes = data.field_changes()
        if "journal_id" in changes:
            self._require_journal(changes["journal_id"])
        if changes:
            self._repo.update_submission(submission_id, changes)

        if data.authors is not None:
            self._repo.replace_authors(submission_id, data.authors)
        if data.alternative_journals is not None:
            self._repo.replace_alternative_journals(submission_id, data.alternative_journals)

        if data.status is not None:
            self._lifecycle.transition(submission_id, data.status)

        return self._lifecycle.get_submission(submission_id)

    def delete(self, submission_id: str) -> None:
        self._lifecycle.get_submission(submission_id)
        self._repo.delete_authors(submission_id)
        self._repo.delete_alternative_journals(submission_id)
        self._repo.delete_submission(submission_id)
        if self._stats is not None:
            self._stats.invalidate_aggregate_stats()
        logger.info("Submission %s deleted", submission_id)
