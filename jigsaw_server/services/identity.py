"""Identifier and clock sources injected into the pipeline engines."""

import random
import uuid
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FixedClock:
    """Clock that always returns the same instant (tests, replays)."""

    def __init__(self, moment: datetime):
        self.moment = moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.moment


class IdentifierSource:
    """Produces prefixed uuid4 identifiers."""

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{self._next_uuid()}"

    def _next_uuid(self) -> uuid.UUID:
        return uuid.uuid4()


class SeededIdentifierSource(IdentifierSource):
    """Reproducible identifiers: the same seed yields the same id sequence."""

    def __init__(self, seed: int = 0):
        self._random = random.Random(seed)

    def _next_uuid(self) -> uuid.UUID:
        return uuid.UUID(int=self._random.getrandbits(128), version=4)
