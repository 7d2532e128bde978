from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from postgrest.exceptions import APIError
from pydantic import BaseModel, ValidationError

from tracker.core.exceptions import RepositoryError
from tracker.lib.api_client import supabase_admin
from tracker.models.schemas import (
    AlternativeJournal,
    Author,
    Journal,
    Review,
    StatusHistoryEntry,
    Submission,
)
from tracker.models.submission import SubmissionStatus

logger = logging.getLogger("tracker.repository")

M = TypeVar("M", bound=BaseModel)

_JOURNAL_COLUMNS = "id, name, issn, area, qualis, description, publisher"
_SUBMISSION_COLUMNS = (
    "id, title, abstract, keywords, status, submitted_at, journal_id, "
    "alternate_journal_id, original_submission_id, creator_id, action_plan"
)
_AUTHOR_COLUMNS = "name, email, institution, author_order"
_ALTERNATIVE_COLUMNS = "journal_name, journal_issn, journal_area, priority, reason"
_REVIEW_COLUMNS = "id, submission_id, received_at, reviewers, score, suggestion"
# PostgREST or=() 语法里逗号/括号是分隔符，搜索词里直接去掉
_SEARCH_UNSAFE = re.compile(r"[,()*%]")


def _rows(resp) -> List[Dict[str, Any]]:
    return getattr(resp, "data", None) or []


class SupabaseRepository:
    """
    SubmissionRepository 的 Supabase (PostgREST) 实现。

    中文注释:
    - 使用 service_role 客户端读写；
    - PostgREST / 网络异常以及脏数据行（pydantic 校验失败）统一包装成 RepositoryError（raise ... from e），
      由服务层决定是否降级；
    - list_history / list_submissions / list_reviews 按时间倒序返回（最新在前）。
    """

    def __init__(self, db_client=None) -> None:
        self._db = db_client or supabase_admin

    def _execute(self, op: str, query):
        try:
            return query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error("%s failed: %s", op, e)
            raise RepositoryError(f"{op} failed") from e

    def _validate(self, op: str, model: Type[M], row: Dict[str, Any]) -> M:
        try:
            return model.model_validate(row)
        except ValidationError as e:
            logger.error("%s returned an invalid %s row: %s", op, model.__name__, e)
            raise RepositoryError(f"{op} returned an invalid {model.__name__} row") from e

    def _validate_all(self, op: str, model: Type[M], resp) -> List[M]:
        return [self._validate(op, model, r) for r in _rows(resp)]

    def _first(self, op: str, model: Type[M], resp) -> Optional[M]:
        rows = _rows(resp)
        return self._validate(op, model, rows[0]) if rows else None

    # === journals ===

    def get_journal(self, journal_id: str) -> Optional[Journal]:
        resp = self._execute(
            "get_journal",
            self._db.table("journals").select(_JOURNAL_COLUMNS).eq("id", journal_id).limit(1),
        )
        return self._first("get_journal", Journal, resp)

    def list_journals(self) -> List[Journal]:
        resp = self._execute(
            "list_journals",
            self._db.table("journals").select(_JOURNAL_COLUMNS).order("name"),
        )
        return self._validate_all("list_journals", Journal, resp)

    def search_journals(self, query: str) -> List[Journal]:
        term = _SEARCH_UNSAFE.sub(" ", query or "").strip()
        if not term:
            return self.list_journals()
        pattern = f"%{term}%"
        resp = self._execute(
            "search_journals",
            self._db.table("journals")
            .select(_JOURNAL_COLUMNS)
            .or_(f"name.ilike.{pattern},issn.ilike.{pattern},area.ilike.{pattern}")
            .order("name"),
        )
        return self._validate_all("search_journals", Journal, resp)

    def insert_journal(self, journal: Journal) -> None:
        self._execute("insert_journal", self._db.table("journals").insert(journal.model_dump(mode="json")))

    def update_journal(self, journal_id: str, changes: Dict[str, Any]) -> None:
        if not changes:
            return
        self._execute(
            "update_journal",
            self._db.table("journals").update(dict(changes)).eq("id", journal_id),
        )

    def delete_journal(self, journal_id: str) -> None:
        self._execute("delete_journal", self._db.table("journals").delete().eq("id", journal_id))

    # === submissions ===

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        resp = self._execute(
            "get_submission",
            self._db.table("submissions").select(_SUBMISSION_COLUMNS).eq("id", submission_id).limit(1),
        )
        return self._first("get_submission", Submission, resp)

    def list_submissions(
        self,
        *,
        status: Optional[SubmissionStatus] = None,
        journal_id: Optional[str] = None,
        creator_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Submission]:
        query = self._db.table("submissions").select(_SUBMISSION_COLUMNS)
        if status is not None:
            query = query.eq("status", status.value)
        if journal_id:
            query = query.eq("journal_id", journal_id)
        if creator_id:
            query = query.eq("creator_id", creator_id)
        query = query.order("submitted_at", desc=True)
        if limit is not None:
            query = query.limit(max(0, int(limit)))
        resp = self._execute("list_submissions", query)
        return self._validate_all("list_submissions", Submission, resp)

    def insert_submission(self, submission: Submission) -> None:
        payload = submission.model_dump(mode="json")
        self._execute("insert_submission", self._db.table("submissions").insert(payload))

    def update_submission(self, submission_id: str, changes: Dict[str, Any]) -> None:
        if not changes:
            return
        self._execute(
            "update_submission",
            self._db.table("submissions").update(dict(changes)).eq("id", submission_id),
        )

    def set_submission_status(self, submission_id: str, status: SubmissionStatus) -> None:
        self._execute(
            "set_submission_status",
            self._db.table("submissions").update({"status": status.value}).eq("id", submission_id),
        )

    def delete_submission(self, submission_id: str) -> None:
        self._execute(
            "delete_submission",
            self._db.table("submissions").delete().eq("id", submission_id),
        )

    def list_submission_statuses(self, journal_id: Optional[str] = None) -> List[str]:
        query = self._db.table("submissions").select("status")
        if journal_id:
            query = query.eq("journal_id", journal_id)
        resp = self._execute("list_submission_statuses", query)
        return [str(r.get("status") or "") for r in _rows(resp)]

    def count_submissions_by_journal(self) -> Dict[str, int]:
        resp = self._execute(
            "count_submissions_by_journal",
            self._db.table("submissions").select("journal_id"),
        )
        return dict(Counter(str(r["journal_id"]) for r in _rows(resp) if r.get("journal_id")))

    # === history ===

    def append_history(self, submission_id: str, entry: StatusHistoryEntry) -> None:
        payload = {
            "submission_id": submission_id,
            "status": entry.status.value,
            "changed_at": entry.changed_at.isoformat(),
            "note": entry.note,
        }
        self._execute("append_history", self._db.table("status_history").insert(payload))

    def list_history(self, submission_id: str) -> List[StatusHistoryEntry]:
        resp = self._execute(
            "list_history",
            self._db.table("status_history")
            .select("submission_id, status, changed_at, note")
            .eq("submission_id", submission_id)
            .order("changed_at", desc=True),
        )
        return self._validate_all("list_history", StatusHistoryEntry, resp)

    # === authors / alternative journals ===

    def list_authors(self, submission_id: str) -> List[Author]:
        resp = self._execute(
            "list_authors",
            self._db.table("authors")
            .select(_AUTHOR_COLUMNS)
            .eq("submission_id", submission_id)
            .order("author_order"),
        )
        return [
            self._validate("list_authors", Author, {**r, "order": r.get("author_order") or 0})
            for r in _rows(resp)
        ]

    def delete_authors(self, submission_id: str) -> None:
        self._execute(
            "delete_authors",
            self._db.table("authors").delete().eq("submission_id", submission_id),
        )

    def replace_authors(self, submission_id: str, authors: List[Author]) -> None:
        self.delete_authors(submission_id)
        if not authors:
            return
        payload = [
            {
                "submission_id": submission_id,
                "name": a.name,
                "email": a.email,
                "institution": a.institution,
                "author_order": a.order,
            }
            for a in authors
        ]
        self._execute("insert_authors", self._db.table("authors").insert(payload))

    def list_alternative_journals(self, submission_id: str) -> List[AlternativeJournal]:
        resp = self._execute(
            "list_alternative_journals",
            self._db.table("alternative_journals")
            .select(_ALTERNATIVE_COLUMNS)
            .eq("submission_id", submission_id)
            .order("priority"),
        )
        return self._validate_all("list_alternative_journals", AlternativeJournal, resp)

    def delete_alternative_journals(self, submission_id: str) -> None:
        self._execute(
            "delete_alternative_journals",
            self._db.table("alternative_journals").delete().eq("submission_id", submission_id),
        )

    def replace_alternative_journals(self, submission_id: str, alternatives: List[AlternativeJournal]) -> None:
        self.delete_alternative_journals(submission_id)
        if not alternatives:
            return
        payload = [{"submission_id": submission_id, **alt.model_dump()} for alt in alternatives]
        self._execute("insert_alternative_journals", self._db.table("alternative_journals").insert(payload))

    # === reviews ===

    def get_review(self, review_id: str) -> Optional[Review]:
        resp = self._execute(
            "get_review",
            self._db.table("reviews").select(_REVIEW_COLUMNS).eq("id", review_id).limit(1),
        )
        return self._first("get_review", Review, resp)

    def insert_review(self, review: Review) -> Review:
        payload = review.model_dump(mode="json", exclude_none=True)
        resp = self._execute("insert_review", self._db.table("reviews").insert(payload))
        return self._first("insert_review", Review, resp) or review

    def list_reviews(self, submission_id: str) -> List[Review]:
        resp = self._execute(
            "list_reviews",
            self._db.table("reviews")
            .select(_REVIEW_COLUMNS)
            .eq("submission_id", submission_id)
            .order("received_at", desc=True),
        )
        return self._validate_all("list_reviews", Review, resp)

    def update_review(self, review_id: str, changes: Dict[str, Any]) -> None:
        if not changes:
            return
        self._execute(
            "update_review",
            self._db.table("reviews").update(dict(changes)).eq("id", review_id),
        )

    def delete_review(self, review_id: str) -> None:
        self._execute("delete_review", self._db.table("reviews").delete().eq("id", review_id))
