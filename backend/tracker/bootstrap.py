"""
组装入口：加载 .env、配置日志，并把各服务接到同一个 repository / 统计缓存上。

上层（HTTP/RPC 层、脚本）只需要调用 build_services()。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from tracker.core.config import TrackerConfig
from tracker.services.journal_service import JournalService
from tracker.services.lifecycle_service import SubmissionLifecycleService
from tracker.services.ports import SubmissionRepository
from tracker.services.recommendation_service import JournalRecommendationService
from tracker.services.review_service import ReviewService
from tracker.services.stats_service import StatsService
from tracker.services.submission_service import SubmissionService

logger = logging.getLogger("tracker")


@dataclass(frozen=True)
class TrackerServices:
    config: TrackerConfig
    lifecycle: SubmissionLifecycleService
    submissions: SubmissionService
    recommendations: JournalRecommendationService
    reviews: ReviewService
    stats: StatsService
    journals: JournalService


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_services(
    repository: Optional[SubmissionRepository] = None,
    config: Optional[TrackerConfig] = None,
    *,
    load_env: bool = True,
) -> TrackerServices:
    if load_env:
        load_dotenv()
    cfg = config or TrackerConfig.from_env()
    configure_logging(cfg.log_level)

    if repository is None:
        # 延迟导入：只有真正走 Supabase 时才需要 supabase 客户端
        from tracker.services.supabase_repository import SupabaseRepository

        repository = SupabaseRepository()

    stats = StatsService(repository, cfg)
    lifecycle = SubmissionLifecycleService(repository, stats=stats)
    services = TrackerServices(
        config=cfg,
        lifecycle=lifecycle,
        submissions=SubmissionService(repository, lifecycle, stats=stats),
        recommendations=JournalRecommendationService(repository, cfg),
        reviews=ReviewService(repository),
        stats=stats,
        journals=JournalService(repository, stats=stats),
    )
    logger.info("tracker services ready (env=%s)", cfg.env)
    return services
