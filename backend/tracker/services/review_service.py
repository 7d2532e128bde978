from __future__ import annotations

import logging
from typing import List

from tracker.core.exceptions import NotFoundError
from tracker.models.schemas import Review, ReviewUpdate
from tracker.services.ports import SubmissionRepository

logger = logging.getLogger("tracker.reviews")


class ReviewService:
    """Records reviewer feedback against an existing submission."""

    def __init__(self, repository: SubmissionRepository) -> None:
        self._repo = repository

    def get(self, review_id: str) -> Review:
        review = self._repo.get_review(review_id)
        if review is None:
            raise NotFoundError("Review", review_id)
        return review

    def record(self, review: Review) -> Review:
        if self._repo.get_submission(review.submission_id) is None:
            raise NotFoundError("Submission", review.submission_id)
        saved = self._repo.insert_review(review)
        logger.info(
            "Review recorded for submission %s (%d reviewers, %d pending requests)",
            review.submission_id,
            len(review.reviewers),
            review.pending_requests,
        )
        return saved

    def list_for_submission(self, submission_id: str) -> List[Review]:
        if self._repo.get_submission(submission_id) is None:
            raise NotFoundError("Submission", submission_id)
        # 最新收到的在前
        return sorted(self._repo.list_reviews(submission_id), key=lambda r: r.received_at, reverse=True)

    def update(self, review_id: str, data: ReviewUpdate) -> Review:
        self.get(review_id)
        changes = data.field_changes()
        if changes:
            self._repo.update_review(review_id, changes)
        return self.get(review_id)

    def delete(self, review_id: str) -> None:
        review = self.get(review_id)
        self._repo.delete_review(review_id)
        logger.info("Review %s deleted from submission %s", review_id, review.submission_id)
