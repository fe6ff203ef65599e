"""Telemetry collection for pipeline runs."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

import redis

from jigsaw_server.config.redis_config import redis_config
from jigsaw_server.config.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class PipelineMetrics:
    """Aggregate metrics for one case type."""

    case_type: str
    total_runs: int = 0
    total_inputs: int = 0
    fragments_verified: int = 0
    inputs_rejected: int = 0
    components_placed: int = 0
    components_unplaceable: int = 0
    total_completion: float = 0.0
    court_ready_runs: int = 0
    last_case_id: Optional[str] = None
    last_updated: Optional[str] = None

    @property
    def acceptance_rate(self) -> float:
        if self.total_inputs == 0:
            return 0.0
        return self.fragments_verified / self.total_inputs

    @property
    def average_completion(self) -> float:
        if self.total_runs == 0:
            return 0.0
        return self.total_completion / self.total_runs


class TelemetryStore:
    """Persist run telemetry in Redis with in-memory fallback."""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        namespace: Optional[str] = None,
        ttl: Optional[int] = None,
    ) -> None:
        self.redis_client = redis_client
        self.namespace = namespace or settings.TELEMETRY_NAMESPACE
        self.ttl = ttl or settings.RUN_METRICS_TTL
        self._cache: Dict[str, PipelineMetrics] = {}

    def _key(self, case_type: str) -> str:
        return f"{self.namespace}:{case_type}"

    def _load_from_cache(self, case_type: str) -> PipelineMetrics:
        if case_type in self._cache:
            return self._cache[case_type]

        metrics = PipelineMetrics(case_type=case_type)

        if self.redis_client is not None:
            try:
                data = self.redis_client.get(self._key(case_type))
                if data:
                    metrics = PipelineMetrics(**json.loads(data))
            except (redis.RedisError, ValueError, TypeError) as exc:
                logger.warning(f"Failed to load telemetry for {case_type}: {exc}")

        self._cache[case_type] = metrics
        return metrics

    def _persist(self, metrics: PipelineMetrics) -> None:
        self._cache[metrics.case_type] = metrics

        if self.redis_client is not None:
            try:
                self.redis_client.setex(self._key(metrics.case_type), self.ttl, json.dumps(asdict(metrics)))
            except redis.RedisError as exc:
                logger.warning(f"Failed to persist telemetry for {metrics.case_type}: {exc}")

    def record_run(
        self,
        case_type: str,
        case_id: str,
        total_inputs: int,
        fragments_verified: int,
        inputs_rejected: int,
        components_placed: int,
        components_unplaceable: int,
        completion: float,
        court_ready: bool,
    ) -> PipelineMetrics:
        metrics = self._load_from_cache(case_type)
        metrics.total_runs += 1
        metrics.total_inputs += total_inputs
        metrics.fragments_verified += fragments_verified
        metrics.inputs_rejected += inputs_rejected
        metrics.components_placed += components_placed
        metrics.components_unplaceable += components_unplaceable
        metrics.total_completion += completion
        if court_ready:
            metrics.court_ready_runs += 1
        metrics.last_case_id = case_id
        metrics.last_updated = datetime.now(timezone.utc).isoformat()
        self._persist(metrics)
        return metrics

    def get_metrics(self, case_type: str) -> PipelineMetrics:
        return self._load_from_cache(case_type)

    def get_all_metrics(self) -> Dict[str, PipelineMetrics]:
        if self.redis_client is not None:
            try:
                for key in self.redis_client.keys(f"{self.namespace}:*"):
                    if isinstance(key, bytes):
                        key = key.decode("utf-8")
                    self._load_from_cache(key.rsplit(":", 1)[-1])
            except redis.RedisError as exc:
                logger.warning(f"Failed to enumerate telemetry keys: {exc}")
        return dict(self._cache)


_default_store: Optional[TelemetryStore] = None


def get_telemetry_store() -> TelemetryStore:
    """Return global telemetry store singleton."""

    global _default_store
    if _default_store is None:
        try:
            redis_client = redis_config.client
        except redis.RedisError as exc:
            logger.info(f"Redis unavailable, telemetry kept in memory: {exc}")
            redis_client = None
        _default_store = TelemetryStore(redis_client=redis_client)
    return _default_store


__all__ = [
    "PipelineMetrics",
    "TelemetryStore",
    "get_telemetry_store",
]
