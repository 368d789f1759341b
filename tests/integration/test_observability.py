"""
Observability Tests

Audit entries and metrics recorded while the engine runs.

AXIOM UNDER TEST:
=================
Observability only records. Turning metrics off or overflowing a
collector never changes a processing result.
"""

import pytest

from aspd import AspdEngine, EngineConfig
from aspd.contracts import AuditEventType, AuditLogEntry
from aspd.observability import (
    LAYERS, LogCollector, MetricsCollector, ObservabilityConfig, ObservabilityEngine,
)

from .fixtures import FORMAL_TEXT, GENERAL_TEXT, OVERDRIVEN_CALIBRATION, PADDED_TEXT


@pytest.fixture
def engine():
    return AspdEngine()


def _entry(layer="engine", action="probe"):
    return AuditLogEntry.create(layer=layer, action=action, event_type=AuditEventType.SYSTEM)


class TestLogCollector:

    def test_bounded(self):
        collector = LogCollector("engine", max_entries=3)
        for i in range(5):
            collector.collect(_entry(action=f"a{i}"))

        assert collector.entry_count == 3
        assert collector.total_collected == 5
        assert [e.action for e in collector.get_entries()] == ["a2", "a3", "a4"]

    def test_filter_by_event_type(self):
        collector = LogCollector("engine")
        collector.collect(_entry())
        collector.collect(AuditLogEntry.create(
            layer="engine", action="anomaly", event_type=AuditEventType.ANOMALY
        ))
        entries = collector.get_entries(event_type=AuditEventType.ANOMALY)
        assert [e.action for e in entries] == ["anomaly"]


class TestMetricsCollector:

    def test_default_definitions(self):
        names = set(MetricsCollector().definitions())
        assert names == {
            "filter_hits_total", "invariant_violations_total", "anomalies_total",
            "process_duration_ms", "context_detections_total",
        }

    def test_aggregates(self):
        metrics = MetricsCollector()
        for value in (1.0, 2.0, 3.0, 4.0):
            metrics.record("process_duration_ms", value)

        aggregates = metrics.compute_aggregates("process_duration_ms")
        assert aggregates['count'] == 4
        assert aggregates['sum'] == 10.0
        assert aggregates['min'] == 1.0
        assert aggregates['max'] == 4.0
        assert aggregates['avg'] == 2.5

    def test_aggregates_of_unknown_metric(self):
        assert MetricsCollector().compute_aggregates("missing") == {}

    def test_bounded_series(self):
        metrics = MetricsCollector(max_points=2)
        for value in (1.0, 2.0, 3.0):
            metrics.record("filter_hits_total", value)

        assert [p.value for p in metrics.get_metric("filter_hits_total")] == [2.0, 3.0]
        assert metrics.get_latest("filter_hits_total").value == 3.0

    def test_totals_by_label(self):
        metrics = MetricsCollector()
        metrics.record("anomalies_total", 1.0, {"code": "A"})
        metrics.record("anomalies_total", 1.0, {"code": "A"})
        metrics.record("anomalies_total", 1.0, {"code": "B"})

        assert metrics.totals_by_label("anomalies_total", "code") == {"A": 2.0, "B": 1.0}


class TestObservabilityEngine:

    def test_unknown_layer_is_ignored(self):
        obs = ObservabilityEngine()
        obs.collect_audit(_entry(layer="nowhere"))
        assert obs.get_unified_log() == []

    def test_layer_log(self):
        obs = ObservabilityEngine()
        obs.log_audit(action="started", layer="filtering")
        assert [e.action for e in obs.get_layer_log("filtering")] == ["started"]
        assert obs.get_layer_log("nowhere") == []

    def test_metrics_disabled(self):
        obs = ObservabilityEngine(ObservabilityConfig(enable_metrics=False))
        obs.collect_metric("filter_hits_total", 1.0)
        assert obs.get_metrics() is None


class TestEngineObservability:

    def test_process_reaches_every_layer(self, engine):
        engine.process(PADDED_TEXT)
        by_layer = engine.get_audit_report()['by_layer']

        for layer in ("filtering", "classification", "context", "padding", "engine"):
            assert by_layer.get(layer, 0) >= 1

    def test_layer_filter(self, engine):
        engine.recalibrate(3.0)
        entries = engine.get_audit_log(layers=["calibration"])

        assert [e.action for e in entries] == ["recalibrated"]
        assert all(e.layer == "calibration" for e in entries)

    def test_layers_are_drained_once(self, engine):
        engine.process(PADDED_TEXT)
        engine.process(GENERAL_TEXT)

        stripped = [e for e in engine.get_audit_log(layers=["filtering"])
                    if e.action == "padding_stripped"]
        assert len(stripped) == 1

    def test_metrics_after_processing(self, engine):
        engine.process(PADDED_TEXT)
        engine.process(FORMAL_TEXT)
        metrics = engine.get_metrics()

        assert metrics.compute_aggregates("filter_hits_total")['sum'] == 2.0
        assert metrics.compute_aggregates("process_duration_ms")['count'] == 2
        assert metrics.totals_by_label("context_detections_total", "context_type") == {
            "general": 1.0, "formal_academic": 1.0
        }

    def test_violations_are_counted(self, engine):
        engine.reconfigure(OVERDRIVEN_CALIBRATION)
        engine.process(GENERAL_TEXT)
        metrics = engine.get_metrics()

        assert metrics.totals_by_label("invariant_violations_total", "severity") == {"high": 1.0}
        assert metrics.totals_by_label("anomalies_total", "code") == {"INVARIANT_VIOLATION": 1.0}

        anomaly_entries = [
            e for e in engine.get_audit_log(layers=["engine"])
            if e.event_type == AuditEventType.ANOMALY
        ]
        assert [e.action for e in anomaly_entries] == ["invariant_violation"]

    def test_audit_report_shape(self, engine):
        engine.process(GENERAL_TEXT)
        report = engine.get_audit_report()

        assert report['total_entries'] == sum(report['by_layer'].values())
        assert report['time_range']['start'] is not None
        assert set(report['by_layer']) <= set(LAYERS)

    def test_disabled_metrics_do_not_change_results(self):
        quiet = AspdEngine(EngineConfig(observability=ObservabilityConfig(enable_metrics=False)))
        loud = AspdEngine()

        assert quiet.get_metrics() is None
        assert quiet.process(FORMAL_TEXT).text == loud.process(FORMAL_TEXT).text

    def test_overflowing_collectors_do_not_change_results(self):
        tiny = AspdEngine(EngineConfig(
            observability=ObservabilityConfig(max_entries_per_layer=1, max_points_per_metric=1)
        ))
        texts = [tiny.process(PADDED_TEXT).text for _ in range(5)]

        assert len(set(texts)) == 1
        assert len(tiny.get_audit_log(layers=["engine"])) == 1
