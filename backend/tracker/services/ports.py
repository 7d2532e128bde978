from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from tracker.models.schemas import (
    AlternativeJournal,
    Author,
    Journal,
    Review,
    StatusHistoryEntry,
    Submission,
)
from tracker.models.submission import SubmissionStatus


class SubmissionRepository(Protocol):
    """
    数据访问协作者（由 SupabaseRepository 实现，测试里用内存实现替换）。

    中文注释:
    - get_* 找不到时返回 None，由服务层决定抛 NotFoundError 还是降级；
    - 列表类查询按时间倒序（最新在前），作者按 order、备选期刊按 priority 升序；
    - 底层读写或数据行校验失败统一抛 RepositoryError。
    """

    # === journals ===

    def get_journal(self, journal_id: str) -> Optional[Journal]: ...

    def list_journals(self) -> List[Journal]: ...

    def search_journals(self, query: str) -> List[Journal]: ...

    def insert_journal(self, journal: Journal) -> None: ...

    def update_journal(self, journal_id: str, changes: Dict[str, Any]) -> None: ...

    def delete_journal(self, journal_id: str) -> None: ...

    # === submissions ===

    def get_submission(self, submission_id: str) -> Optional[Submission]: ...

    def list_submissions(
        self,
        *,
        status: Optional[SubmissionStatus] = None,
        journal_id: Optional[str] = None,
        creator_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Submission]: ...

    def insert_submission(self, submission: Submission) -> None: ...

    def update_submission(self, submission_id: str, changes: Dict[str, Any]) -> None: ...

    def set_submission_status(self, submission_id: str, status: SubmissionStatus) -> None: ...

    def delete_submission(self, submission_id: str) -> None: ...

    # === history ===

    def append_history(self, submission_id: str, entry: StatusHistoryEntry) -> None: ...

    def list_history(self, submission_id: str) -> List[StatusHistoryEntry]: ...

    # === authors / alternative journals ===

    def list_authors(self, submission_id: str) -> List[Author]: ...

    def replace_authors(self, submission_id: str, authors: List[Author]) -> None: ...

    def delete_authors(self, submission_id: str) -> None: ...

    def list_alternative_journals(self, submission_id: str) -> List[AlternativeJournal]: ...

    def replace_alternative_journals(self, submission_id: str, alternatives: List[AlternativeJournal]) -> None: ...

    def delete_alternative_journals(self, submission_id: str) -> None: ...

    # === reviews ===

    def get_review(self, review_id: str) -> Optional[Review]: ...

    def insert_review(self, review: Review) -> Review: ...

    def list_reviews(self, submission_id: str) -> List[Review]: ...

    def update_review(self, review_id: str, changes: Dict[str, Any]) -> None: ...

    def delete_review(self, review_id: str) -> None: ...

    # === stats ===

    def list_submission_statuses(self, journal_id: Optional[str] = None) -> List[str]: ...

    def count_submissions_by_journal(self) -> Dict[str, int]: ...


class StatsInvalidator(Protocol):
    def invalidate_aggregate_stats(self) -> None: ...
