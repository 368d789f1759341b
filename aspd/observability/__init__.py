"""
Observability & Audit Layer

RESPONSIBILITY: Audit logging and metrics for every processing layer
ALLOWED INPUTS: AuditLogEntry copies and metric samples from other layers
OUTPUTS: Audit log views, MetricPoint series, audit reports

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret events (only record them)
- Make decisions based on logged data
- Block or delay other layer operations

BOUNDARY ENFORCEMENT:
=====================
- Receives immutable entries, never edits them
- Provides read-only access to logs and metrics
- Collectors are bounded; the oldest entries fall off first
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple
from enum import Enum
import threading

import numpy as np

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import Anomaly, Timestamp, TimeRange
from ..contracts.events import AuditLogEntry, AuditEventType, MetricPoint


LAYERS: Tuple[str, ...] = (
    'filtering', 'classification', 'calibration', 'context', 'padding', 'engine'
)


# =============================================================================
# LOG COLLECTORS (One per layer)
# =============================================================================

class LogCollector:
    """
    Append-only, bounded collector for one layer.
    """

    def __init__(self, layer_name: str, max_entries: int = 10000):
        self._layer_name = layer_name
        self._entries: Deque[AuditLogEntry] = deque(maxlen=max_entries)
        self._sequence: int = 0
        self._lock = threading.Lock()

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only)."""
        with self._lock:
            self._entries.append(entry)
            self._sequence += 1

    def get_entries(
        self,
        time_range: Optional[TimeRange] = None,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        with self._lock:
            entries = list(self._entries)

        if time_range:
            entries = [
                e for e in entries
                if time_range.contains(e.timestamp)
            ]

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        return entries

    @property
    def layer_name(self) -> str:
        return self._layer_name

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    @property
    def total_collected(self) -> int:
        """Entries ever collected, including ones that fell off."""
        return self._sequence


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Append-only time series per metric name.
    """

    def __init__(self, max_points: int = 10000):
        self._max_points = max_points
        self._metrics: Dict[str, Deque[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._lock = threading.Lock()
        self._register_default_metrics()

    def _register_default_metrics(self):
        """Register standard metrics."""
        defaults = [
            MetricDefinition(
                name="filter_hits_total",
                metric_type=MetricType.COUNTER,
                description="Padding phrases removed by the heat shield"
            ),
            MetricDefinition(
                name="invariant_violations_total",
                metric_type=MetricType.COUNTER,
                description="Processing calls that ran with a broken invariant",
                labels=("severity",)
            ),
            MetricDefinition(
                name="anomalies_total",
                metric_type=MetricType.COUNTER,
                description="Recoverable anomalies recorded in reports",
                labels=("code",)
            ),
            MetricDefinition(
                name="process_duration_ms",
                metric_type=MetricType.TIMING,
                description="End-to-end processing time in milliseconds"
            ),
            MetricDefinition(
                name="context_detections_total",
                metric_type=MetricType.COUNTER,
                description="Context verdicts by context type",
                labels=("context_type",)
            ),
        ]

        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        with self._lock:
            self._definitions[definition.name] = definition
            if definition.name not in self._metrics:
                self._metrics[definition.name] = deque(maxlen=self._max_points)

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        label_tuple = tuple(sorted(labels.items())) if labels else ()

        point = MetricPoint(
            metric_name=metric_name,
            value=float(value),
            timestamp=Timestamp.now(),
            labels=label_tuple
        )
        with self._lock:
            if metric_name not in self._metrics:
                self._metrics[metric_name] = deque(maxlen=self._max_points)
            self._metrics[metric_name].append(point)

    def get_metric(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> List[MetricPoint]:
        """Get metric data points, optionally filtered by time range."""
        with self._lock:
            points = list(self._metrics.get(metric_name, ()))

        if time_range:
            points = [
                p for p in points
                if time_range.contains(p.timestamp)
            ]

        return points

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        """Get the latest value for a metric."""
        points = self.get_metric(metric_name)
        return points[-1] if points else None

    def definitions(self) -> Dict[str, MetricDefinition]:
        with self._lock:
            return dict(self._definitions)

    def compute_aggregates(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> Dict[str, float]:
        """Compute aggregate statistics for a metric."""
        points = self.get_metric(metric_name, time_range)

        if not points:
            return {}

        values = np.array([p.value for p in points], dtype=float)

        return {
            'count': int(values.size),
            'sum': float(values.sum()),
            'min': float(values.min()),
            'max': float(values.max()),
            'avg': float(values.mean()),
            'p95': float(np.percentile(values, 95)),
        }

    def totals_by_label(self, metric_name: str, label: str) -> Dict[str, float]:
        """Sum a counter per value of one label."""
        totals: Dict[str, float] = {}
        for point in self.get_metric(metric_name):
            key = dict(point.labels).get(label, "")
            totals[key] = totals.get(key, 0.0) + point.value
        return totals


# =============================================================================
# OBSERVABILITY ENGINE (Orchestrates all observability)
# =============================================================================

@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    enable_metrics: bool = True
    max_entries_per_layer: int = 10000
    max_points_per_metric: int = 10000


class ObservabilityEngine:
    """
    Central Observability Engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()

        # Log collectors per layer
        self._collectors: Dict[str, LogCollector] = {
            layer: LogCollector(layer, self._config.max_entries_per_layer)
            for layer in LAYERS
        }

        # Metrics collector
        self._metrics = (
            MetricsCollector(self._config.max_points_per_metric)
            if self._config.enable_metrics else None
        )

    def collect_audit(self, entry: AuditLogEntry):
        """Collect an audit log entry from any layer."""
        collector = self._collectors.get(entry.layer)
        if collector:
            collector.collect(entry)

    def collect_all(self, entries: List[AuditLogEntry]):
        for entry in entries:
            self.collect_audit(entry)

    def log_audit(
        self,
        action: str,
        entity_id: Optional[str] = None,
        outcome: str = "success",
        details: str = "",
        layer: str = "engine"
    ):
        """Helper to log audit entry directly."""
        self.collect_audit(AuditLogEntry.create(
            layer=layer,
            action=action,
            event_type=AuditEventType.SYSTEM,
            entity_id=entity_id,
            metadata=(
                ("outcome", outcome),
                ("details", details)
            )
        ))

    def log_anomaly(self, anomaly: Anomaly, entity_id: Optional[str] = None):
        self.collect_audit(AuditLogEntry.create(
            layer="engine",
            action=anomaly.code.name.lower(),
            event_type=AuditEventType.ANOMALY,
            entity_id=entity_id,
            metadata=(("message", anomaly.message),) + anomaly.context
        ))

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Collect a metric data point."""
        if self._metrics:
            self._metrics.record(metric_name, value, labels)

    def get_unified_log(
        self,
        time_range: Optional[TimeRange] = None,
        layers: Optional[List[str]] = None
    ) -> List[AuditLogEntry]:
        """Get unified log from all or specified layers."""
        target_layers = layers or list(self._collectors.keys())

        all_entries = []
        for layer_name in target_layers:
            collector = self._collectors.get(layer_name)
            if collector:
                all_entries.extend(collector.get_entries(time_range=time_range))

        # Sort by timestamp
        all_entries.sort(key=lambda e: e.timestamp.value)

        return all_entries

    def get_layer_log(
        self,
        layer_name: str,
        time_range: Optional[TimeRange] = None
    ) -> List[AuditLogEntry]:
        """Get log for a specific layer."""
        collector = self._collectors.get(layer_name)
        if not collector:
            return []
        return collector.get_entries(time_range=time_range)

    def get_metrics(self) -> Optional[MetricsCollector]:
        """Get metrics collector (read-only access)."""
        return self._metrics

    def generate_audit_report(
        self,
        time_range: Optional[TimeRange] = None
    ) -> Dict:
        """Generate comprehensive audit report."""
        entries = self.get_unified_log(time_range=time_range)

        # Aggregate by layer and event type
        by_layer = {}
        by_type = {}

        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1

        return {
            'total_entries': len(entries),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'time_range': {
                'start': entries[0].timestamp.to_iso() if entries else None,
                'end': entries[-1].timestamp.to_iso() if entries else None,
            },
            'generated_at': Timestamp.now().to_iso()
        }
