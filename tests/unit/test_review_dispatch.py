import json
from datetime import datetime, timezone

import httpx
import pytest

from jigsaw_server.config.settings import Settings
from jigsaw_server.models.readiness import ReviewQueueItem, ReviewSource
from jigsaw_server.services.review_dispatch import ReviewDispatchError, ReviewDispatcher

URL = "http://review.local/queue"


def queue():
    return [
        ReviewQueueItem(
            item_id="REV-1",
            source=ReviewSource.VERIFICATION,
            reason="Input input-1: Level 9 verification requires human confirmation",
            priority=10,
            required_expertise=["General Verification"],
            deadline=datetime(2025, 6, 2, tzinfo=timezone.utc),
        )
    ]


def dispatcher_for(handler, retries=3):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ReviewDispatcher(
        url=URL,
        client=client,
        config=Settings(REVIEW_DISPATCH_RETRIES=retries),
        backoff_delays=[0.0] * retries,
    )


@pytest.mark.asyncio
async def test_dispatch_posts_queue():
    received = []

    def handler(request):
        received.append(json.loads(request.content))
        return httpx.Response(202)

    dispatcher = dispatcher_for(handler)
    delivered = await dispatcher.dispatch("CASE-001", queue())
    await dispatcher.aclose()

    assert delivered == 1
    assert received[0]["case_id"] == "CASE-001"
    assert received[0]["items"][0]["item_id"] == "REV-1"
    assert received[0]["items"][0]["status"] == "pending"


@pytest.mark.asyncio
async def test_dispatch_retries_then_succeeds():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200)

    dispatcher = dispatcher_for(handler)

    assert await dispatcher.dispatch("CASE-001", queue()) == 1
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_dispatch_gives_up_after_retries():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("refused", request=request)

    dispatcher = dispatcher_for(handler, retries=2)

    with pytest.raises(ReviewDispatchError):
        await dispatcher.dispatch("CASE-001", queue())
    assert len(attempts) == 2


def test_url_is_required():
    with pytest.raises(ValueError):
        ReviewDispatcher(url=None, config=Settings(REVIEW_DISPATCH_URL=None))


@pytest.mark.asyncio
async def test_aclose_closes_client():
    dispatcher = dispatcher_for(lambda request: httpx.Response(200))

    await dispatcher.aclose()

    assert dispatcher.client.is_closed
