from __future__ import annotations

import logging
from typing import List, Optional

from tracker.core.config import TrackerConfig
from tracker.core.exceptions import TrackerError
from tracker.core.recommender import rank_journals
from tracker.models.schemas import JournalSuggestion
from tracker.services.ports import SubmissionRepository

logger = logging.getLogger("tracker.recommendation")


class JournalRecommendationService:
    """
    转投推荐：投稿被拒后，为作者按匹配度排出备选期刊。

    中文注释:
    - 这是建议类（advisory）功能，读取失败一律降级为空列表，不向上抛异常；
    - 打分逻辑本身是纯函数，见 tracker.core.recommender。
    """

    def __init__(
        self,
        repository: SubmissionRepository,
        config: Optional[TrackerConfig] = None,
    ) -> None:
        self._repo = repository
        self._config = config or TrackerConfig.from_env()

    def suggest(self, submission_id: str) -> List[JournalSuggestion]:
        try:
            submission = self._repo.get_submission(submission_id)
            if submission is None:
                logger.warning("suggest: submission %s not found", submission_id)
                return []

            current = self._repo.get_journal(submission.journal_id) if submission.journal_id else None
            catalog = self._repo.list_journals()
        except TrackerError as e:
            logger.warning("suggest: failed to load data for %s: %s", submission_id, e)
            return []

        suggestions = rank_journals(
            catalog,
            current_journal_id=submission.journal_id,
            current_area=current.area if current else None,
            keywords=submission.keywords,
            limit=self._config.suggestion_limit,
        )
        logger.debug("suggest: %d candidates for %s", len(suggestions), submission_id)
        return suggestions
