"""
ReviewDispatcher - publish the merged human-review queue to a review-assignment service

Dispatch uses an explicit timeout and retries with exponential backoff
(100ms, 200ms, 400ms, ...). Readiness and review gating stay advisory: the
orchestrator reports a failed dispatch instead of failing the run.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx

from jigsaw_server.config.settings import Settings, settings
from jigsaw_server.models.readiness import ReviewQueueItem

logger = logging.getLogger(__name__)


class ReviewDispatchError(ConnectionError):
    """Raised when the review queue could not be delivered after all retries."""


class ReviewDispatcher:
    """POSTs review queues as JSON to ``REVIEW_DISPATCH_URL``."""

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[Settings] = None,
        backoff_delays: Optional[List[float]] = None,
    ):
        self.config = config or settings
        self.url = url or self.config.REVIEW_DISPATCH_URL
        if not self.url:
            raise ValueError("ReviewDispatcher requires a dispatch URL")
        self.client = client or httpx.AsyncClient(timeout=self.config.REVIEW_DISPATCH_TIMEOUT)
        self.retries = max(1, self.config.REVIEW_DISPATCH_RETRIES)
        self.backoff_delays = backoff_delays or [0.1 * (2 ** attempt) for attempt in range(self.retries)]

    async def dispatch(self, case_id: str, queue: Sequence[ReviewQueueItem]) -> int:
        """
        Deliver ``queue`` for ``case_id``.

        Returns:
            Number of items delivered

        Raises:
            ReviewDispatchError: after the last retry failed
        """
        payload = {
            "case_id": case_id,
            "items": [item.model_dump(mode="json") for item in queue],
        }

        for attempt in range(self.retries):
            try:
                response = await self.client.post(
                    self.url,
                    json=payload,
                    timeout=self.config.REVIEW_DISPATCH_TIMEOUT,
                )
                response.raise_for_status()
                logger.info(f"Dispatched {len(queue)} review items for case {case_id}")
                return len(queue)
            except httpx.HTTPError as e:
                logger.warning(
                    f"Review dispatch attempt {attempt+1}/{self.retries} for case {case_id} failed: {e}"
                )

                if attempt < self.retries - 1:
                    delay = self.backoff_delays[min(attempt, len(self.backoff_delays) - 1)]
                    logger.info(f"Retrying in {delay*1000:.0f}ms...")
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Review dispatch for case {case_id} failed after {self.retries} retries")
                    raise ReviewDispatchError(
                        f"Review dispatch failed after {self.retries} retries "
                        f"with exponential backoff"
                    ) from e

        raise ReviewDispatchError("Unexpected error in retry logic")

    async def aclose(self) -> None:
        await self.client.aclose()
