import json

import pytest
import redis

from jigsaw_server.services.telemetry import PipelineMetrics, TelemetryStore


class StubRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def keys(self, pattern):
        prefix = pattern.rstrip("*")
        return [key for key in self.store if key.startswith(prefix)]


class BrokenRedis(StubRedis):
    def setex(self, key, ttl, value):
        raise redis.ConnectionError("connection refused")


def record(store, case_type="fraud", case_id="CASE-1", completion=80.0, court_ready=True):
    return store.record_run(
        case_type=case_type,
        case_id=case_id,
        total_inputs=4,
        fragments_verified=3,
        inputs_rejected=1,
        components_placed=3,
        components_unplaceable=0,
        completion=completion,
        court_ready=court_ready,
    )


def test_in_memory_aggregation():
    store = TelemetryStore()

    record(store, completion=80.0)
    metrics = record(store, case_id="CASE-2", completion=60.0, court_ready=False)

    assert metrics.total_runs == 2
    assert metrics.acceptance_rate == pytest.approx(0.75)
    assert metrics.average_completion == pytest.approx(70.0)
    assert metrics.court_ready_runs == 1
    assert metrics.last_case_id == "CASE-2"


def test_empty_metrics():
    metrics = PipelineMetrics(case_type="fraud")

    assert metrics.acceptance_rate == 0.0
    assert metrics.average_completion == 0.0


def test_redis_persistence_round_trip():
    client = StubRedis()
    record(TelemetryStore(redis_client=client, namespace="test", ttl=60))

    assert client.ttls["test:fraud"] == 60
    assert json.loads(client.store["test:fraud"])["total_runs"] == 1

    fresh = TelemetryStore(redis_client=client, namespace="test", ttl=60)
    assert fresh.get_metrics("fraud").fragments_verified == 3
    assert set(fresh.get_all_metrics()) == {"fraud"}


def test_redis_failure_falls_back_to_memory():
    store = TelemetryStore(redis_client=BrokenRedis(), namespace="test")

    metrics = record(store)

    assert metrics.total_runs == 1
    assert store.get_metrics("fraud").total_runs == 1
