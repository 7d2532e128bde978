from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from tracker.models.submission import SubmissionStatus

MAX_REVIEWERS = 4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _strip_or_none(value):
    if value is None:
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return value


# === 期刊 (periódico) ===


class Journal(BaseModel):
    """期刊目录条目"""

    id: str
    name: str = Field(..., min_length=1, max_length=500)
    issn: Optional[str] = Field(None, max_length=20)
    area: Optional[str] = Field(None, max_length=200, description="Subject area (free text)")
    qualis: Optional[str] = Field(None, max_length=10, description="Quality tier, A1 highest")
    description: Optional[str] = Field(None, description="Free text used for keyword matching")
    publisher: Optional[str] = Field(None, max_length=300)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("issn", "area", "description", "publisher", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value):
        return _strip_or_none(value)

    @field_validator("qualis", mode="before")
    @classmethod
    def normalize_qualis(cls, value):
        # 中文注释: qualis 统一大写（"a1" -> "A1"），空串视为未分级
        value = _strip_or_none(value)
        if isinstance(value, str):
            return value.upper()
        return value


class JournalCreate(BaseModel):
    """新增期刊（id 由服务层生成）"""

    name: str = Field(..., min_length=1, max_length=500)
    issn: Optional[str] = Field(None, max_length=20)
    area: Optional[str] = Field(None, max_length=200)
    qualis: Optional[str] = Field(None, max_length=10)
    description: Optional[str] = None
    publisher: Optional[str] = Field(None, max_length=300)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("must not be blank")
        return trimmed


class JournalUpdate(BaseModel):
    """部分更新；未传（None）的字段保持不变"""

    name: Optional[str] = Field(None, min_length=1, max_length=500)
    issn: Optional[str] = Field(None, max_length=20)
    area: Optional[str] = Field(None, max_length=200)
    qualis: Optional[str] = Field(None, max_length=10)
    description: Optional[str] = None
    publisher: Optional[str] = Field(None, max_length=300)

    @field_validator("qualis", mode="before")
    @classmethod
    def normalize_qualis(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def field_changes(self) -> dict:
        return self.model_dump(exclude_none=True)


# === 作者 / 备选期刊 ===


class Author(BaseModel):
    name: str = Field(..., min_length=1, max_length=300)
    email: Optional[str] = Field(None, max_length=320)
    institution: Optional[str] = Field(None, max_length=500)
    order: int = Field(0, ge=0)

    @field_validator("email", "institution", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value):
        return _strip_or_none(value)


class AlternativeJournal(BaseModel):
    """作者登记的备选投稿目标（按 priority 升序）"""

    journal_name: str = Field(..., min_length=1, max_length=500)
    journal_issn: Optional[str] = Field(None, max_length=20)
    journal_area: Optional[str] = Field(None, max_length=200)
    priority: int
    reason: Optional[str] = None


# === 投稿 ===


class Submission(BaseModel):
    """数据库中的完整投稿模型"""

    id: str
    title: str
    abstract: str
    keywords: str = Field("", description="Comma-separated keyword string")
    status: SubmissionStatus = SubmissionStatus.EM_AVALIACAO
    submitted_at: datetime = Field(default_factory=_utcnow)
    journal_id: str
    alternate_journal_id: Optional[str] = None
    original_submission_id: Optional[str] = None
    creator_id: Optional[str] = None
    action_plan: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SubmissionCreate(BaseModel):
    """创建投稿时使用的模型"""

    title: str = Field(..., min_length=1, max_length=1000)
    abstract: str = Field(..., min_length=1)
    keywords: str = Field(..., min_length=1)
    journal_id: str = Field(..., min_length=1)
    alternate_journal_id: Optional[str] = None
    original_submission_id: Optional[str] = None
    action_plan: Optional[str] = None
    authors: List[Author] = Field(default_factory=list)
    alternative_journals: List[AlternativeJournal] = Field(default_factory=list)

    @field_validator("title", "abstract", "keywords", "journal_id")
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("must not be blank")
        return trimmed

    @field_validator("alternate_journal_id", "original_submission_id", "action_plan", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value):
        return _strip_or_none(value)


class SubmissionUpdate(BaseModel):
    """
    字段编辑。authors / alternative_journals 为 None 表示不改动，
    传列表则整体替换；status 非空时走生命周期流转。
    """

    title: Optional[str] = Field(None, min_length=1, max_length=1000)
    abstract: Optional[str] = None
    keywords: Optional[str] = None
    journal_id: Optional[str] = None
    action_plan: Optional[str] = None
    status: Optional[SubmissionStatus] = None
    authors: Optional[List[Author]] = None
    alternative_journals: Optional[List[AlternativeJournal]] = None

    def field_changes(self) -> dict:
        return self.model_dump(
            exclude_none=True,
            exclude={"status", "authors", "alternative_journals"},
        )


class StatusHistoryEntry(BaseModel):
    """Append-only audit record; never mutated after creation."""

    status: SubmissionStatus
    changed_at: datetime = Field(default_factory=_utcnow)
    note: Optional[str] = None
    submission_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)


# === 审稿意见 ===


class ReviewerFeedback(BaseModel):
    request: Optional[str] = Field(None, description="Changes requested by the reviewer")
    response: Optional[str] = Field(None, description="How the authors addressed them")

    @field_validator("request", "response", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value):
        return _strip_or_none(value)


class Review(BaseModel):
    """
    一轮审稿反馈：最多 4 位审稿人，每位一组 request/response。
    score / suggestion 由外部 LLM 步骤填写，这里只保存。
    """

    id: Optional[str] = None
    submission_id: str
    received_at: datetime = Field(default_factory=_utcnow)
    reviewers: List[ReviewerFeedback] = Field(default_factory=list, max_length=MAX_REVIEWERS)
    score: Optional[float] = Field(None, ge=0, le=100)
    suggestion: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def pending_requests(self) -> int:
        return sum(1 for r in self.reviewers if r.request and not r.response)


class ReviewUpdate(BaseModel):
    """审稿记录的部分更新；submission_id 不可改"""

    received_at: Optional[datetime] = None
    reviewers: Optional[List[ReviewerFeedback]] = Field(None, max_length=MAX_REVIEWERS)
    score: Optional[float] = Field(None, ge=0, le=100)
    suggestion: Optional[str] = None

    def field_changes(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


# === 投稿详情（聚合读） ===


class SubmissionDetail(BaseModel):
    """getById 视图：投稿本身 + 期刊、作者、备选期刊、审稿与状态历史"""

    submission: Submission
    journal: Optional[Journal] = None
    authors: List[Author] = Field(default_factory=list)
    alternative_journals: List[AlternativeJournal] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)
    history: List[StatusHistoryEntry] = Field(default_factory=list)


# === 推荐 / 统计输出 ===


class JournalSuggestion(BaseModel):
    journal: Journal
    score: int
    tier: Literal["high", "medium", "low"]
    reasons: str


class StatusCounts(BaseModel):
    total: int = 0
    under_review: int = 0
    approved: int = 0
    rejected: int = 0
    revision_requested: int = 0
    resubmitted: int = 0


class JournalUsage(BaseModel):
    journal: Journal
    total_submissions: int = 0
