"""
Audit and Metric Contracts

Immutable records handed from the processing layers to the observability
layer. Layers produce these; nothing downstream ever edits them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
from enum import Enum
import hashlib

from .base import Timestamp


class AuditEventType(Enum):
    """Explicit audit event types."""
    FILTERING = "filtering"
    CLASSIFICATION = "classification"
    CALIBRATION = "calibration"
    CONTEXT = "context"
    PADDING = "padding"
    ANOMALY = "anomaly"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(
        layer: str,
        action: str,
        event_type: AuditEventType,
        entity_id: Optional[str] = None,
        metadata: Tuple[Tuple[str, str], ...] = ()
    ) -> AuditLogEntry:
        """Factory for hash-identified entries."""
        now = Timestamp.now()
        digest = hashlib.sha256(
            f"{layer}_{action}|{entity_id}|{now.value.timestamp()}".encode()
        ).hexdigest()[:16]
        return AuditLogEntry(
            entry_id=f"audit_{digest}",
            event_type=event_type,
            timestamp=now,
            layer=layer,
            action=action,
            entity_id=entity_id,
            metadata=metadata
        )

    def to_dict(self) -> dict:
        return {
            'entry_id': self.entry_id,
            'event_type': self.event_type.value,
            'timestamp': self.timestamp.to_iso(),
            'layer': self.layer,
            'action': self.action,
            'entity_id': self.entity_id,
            'metadata': dict(self.metadata),
        }


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
