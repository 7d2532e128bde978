import os
import sys
from collections import Counter
from typing import Any, Dict, List, Optional

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tracker.core.config import TrackerConfig
from tracker.models.schemas import (
    AlternativeJournal,
    Author,
    Journal,
    Review,
    StatusHistoryEntry,
    Submission,
)
from tracker.models.submission import SubmissionStatus

# === 全局测试配置 ===
# 中文注释:
# 1. 单元测试不连接 Supabase，统一使用内存版 repository；
# 2. 内存实现与 SupabaseRepository 保持同样的约定：找不到返回 None，历史最新在前。


class InMemoryRepository:
    def __init__(self) -> None:
        self.journals: Dict[str, Journal] = {}
        self.submissions: Dict[str, Submission] = {}
        self.history: Dict[str, List[StatusHistoryEntry]] = {}
        self.authors: Dict[str, List[Author]] = {}
        self.alternatives: Dict[str, List[AlternativeJournal]] = {}
        self.reviews: Dict[str, List[Review]] = {}

    def add_journal(self, journal: Journal) -> Journal:
        self.journals[journal.id] = journal
        return journal

    # === journals ===

    def get_journal(self, journal_id: str) -> Optional[Journal]:
        return self.journals.get(journal_id)

    def list_journals(self) -> List[Journal]:
        return list(self.journals.values())

    def search_journals(self, query: str) -> List[Journal]:
        q = query.lower()
        return [
            j
            for j in self.journals.values()
            if q in j.name.lower() or q in (j.issn or "").lower() or q in (j.area or "").lower()
        ]

    def insert_journal(self, journal: Journal) -> None:
        self.journals[journal.id] = journal

    def update_journal(self, journal_id: str, changes: Dict[str, Any]) -> None:
        current = self.journals[journal_id]
        self.journals[journal_id] = Journal.model_validate({**current.model_dump(), **changes})

    def delete_journal(self, journal_id: str) -> None:
        self.journals.pop(journal_id, None)

    # === submissions ===

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        return self.submissions.get(submission_id)

    def list_submissions(
        self,
        *,
        status: Optional[SubmissionStatus] = None,
        journal_id: Optional[str] = None,
        creator_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Submission]:
        rows = [
            s
            for s in self.submissions.values()
            if (status is None or s.status == status)
            and (journal_id is None or s.journal_id == journal_id)
            and (creator_id is None or s.creator_id == creator_id)
        ]
        rows.sort(key=lambda s: s.submitted_at, reverse=True)
        return rows if limit is None else rows[:limit]

    def set_submission_status(self, submission_id: str, status: SubmissionStatus) -> None:
        current = self.submissions[submission_id]
        self.submissions[submission_id] = current.model_copy(update={"status": status})

    def insert_submission(self, submission: Submission) -> None:
        self.submissions[submission.id] = submission

    def update_submission(self, submission_id: str, changes: Dict[str, Any]) -> None:
        current = self.submissions[submission_id]
        self.submissions[submission_id] = current.model_copy(update=changes)

    def delete_submission(self, submission_id: str) -> None:
        self.submissions.pop(submission_id, None)

    # === history ===

    def append_history(self, submission_id: str, entry: StatusHistoryEntry) -> None:
        self.history.setdefault(submission_id, []).insert(0, entry)

    def list_history(self, submission_id: str) -> List[StatusHistoryEntry]:
        return list(self.history.get(submission_id, []))

    # === authors / alternative journals ===

    def list_authors(self, submission_id: str) -> List[Author]:
        return list(self.authors.get(submission_id, []))

    def replace_authors(self, submission_id: str, authors: List[Author]) -> None:
        self.authors[submission_id] = list(authors)

    def delete_authors(self, submission_id: str) -> None:
        self.authors.pop(submission_id, None)

    def list_alternative_journals(self, submission_id: str) -> List[AlternativeJournal]:
        return list(self.alternatives.get(submission_id, []))

    def replace_alternative_journals(self, submission_id: str, alternatives: List[AlternativeJournal]) -> None:
        self.alternatives[submission_id] = list(alternatives)

    def delete_alternative_journals(self, submission_id: str) -> None:
        self.alternatives.pop(submission_id, None)

    # === reviews ===

    def _find_review(self, review_id: str):
        for rows in self.reviews.values():
            for i, r in enumerate(rows):
                if r.id == review_id:
                    return rows, i
        return None, None

    def get_review(self, review_id: str) -> Optional[Review]:
        rows, i = self._find_review(review_id)
        return rows[i] if rows is not None else None

    def insert_review(self, review: Review) -> Review:
        saved = review.model_copy(update={"id": review.id or f"r{sum(len(v) for v in self.reviews.values()) + 1}"})
        self.reviews.setdefault(review.submission_id, []).append(saved)
        return saved

    def list_reviews(self, submission_id: str) -> List[Review]:
        return list(self.reviews.get(submission_id, []))

    def update_review(self, review_id: str, changes: Dict[str, Any]) -> None:
        rows, i = self._find_review(review_id)
        rows[i] = Review.model_validate({**rows[i].model_dump(), **changes})

    def delete_review(self, review_id: str) -> None:
        rows, i = self._find_review(review_id)
        if rows is not None:
            del rows[i]

    # === stats ===

    def list_submission_statuses(self, journal_id: Optional[str] = None) -> List[str]:
        return [
            s.status.value
            for s in self.submissions.values()
            if journal_id is None or s.journal_id == journal_id
        ]

    def count_submissions_by_journal(self) -> Dict[str, int]:
        return dict(Counter(s.journal_id for s in self.submissions.values()))


class RecordingInvalidator:
    def __init__(self) -> None:
        self.calls = 0

    def invalidate_aggregate_stats(self) -> None:
        self.calls += 1


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def invalidator() -> RecordingInvalidator:
    return RecordingInvalidator()


@pytest.fixture
def tracker_config() -> TrackerConfig:
    return TrackerConfig(
        env="test",
        log_level="INFO",
        stats_cache_ttl_sec=60.0,
        stats_cache_max_entries=64,
        suggestion_limit=10,
        stats_cache_enabled=True,
    )


@pytest.fixture
def cs_journal(repo) -> Journal:
    return repo.add_journal(
        Journal(
            id="j-cs",
            name="Journal of Computer Science",
            issn="1234-5678",
            area="Computer Science",
            qualis="A1",
            description="International journal on algorithms and systems",
        )
    )


@pytest.fixture
def submission(repo, cs_journal) -> Submission:
    sub = Submission(
        id="s1",
        title="Deep models for text",
        abstract="We study neural models.",
        keywords="machine learning, neural networks",
        journal_id=cs_journal.id,
        creator_id="u1",
    )
    repo.insert_submission(sub)
    return sub
