"""In-memory audit trail of cryptographic events with retention and summaries."""

from __future__ import annotations

import threading
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar

from .crypto_types import CryptoMetadata, SecurityLevel


class AuditError(Exception):
    """Raised when audit events cannot be recorded or retrieved."""


RECORDING_FAILED = "Failed to record audit event"
RETRIEVAL_FAILED = "Failed to retrieve audit logs"
INVALID_PERIOD = "Invalid audit period"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnomalySeverity(Enum):
    """How serious a detected anomaly is."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


_UNIT_KINDS = frozenset(
    {
        "KeyGeneration",
        "KeyRotation",
        "SignatureCreation",
        "SignatureVerification",
        "TemplateGeneration",
        "TemplateVerification",
        "SecurityLevelChange",
        "SystemStartup",
        "SystemShutdown",
    }
)
_AUTHENTICATION = "AuthenticationAttempt"
_ANOMALY = "AnomalyDetected"


@dataclass(frozen=True)
class AuditEventType:
    """What happened; two kinds carry extra data (success flag, anomaly severity)."""

    KEY_GENERATION: ClassVar[AuditEventType]
    KEY_ROTATION: ClassVar[AuditEventType]
    SIGNATURE_CREATION: ClassVar[AuditEventType]
    SIGNATURE_VERIFICATION: ClassVar[AuditEventType]
    TEMPLATE_GENERATION: ClassVar[AuditEventType]
    TEMPLATE_VERIFICATION: ClassVar[AuditEventType]
    SECURITY_LEVEL_CHANGE: ClassVar[AuditEventType]
    SYSTEM_STARTUP: ClassVar[AuditEventType]
    SYSTEM_SHUTDOWN: ClassVar[AuditEventType]

    kind: str
    success: bool | None = None
    severity: AnomalySeverity | None = None

    def __post_init__(self) -> None:
        if self.kind in _UNIT_KINDS:
            if self.success is not None or self.severity is not None:
                raise ValueError(f"{self.kind} carries no data")
        elif self.kind == _AUTHENTICATION:
            if not isinstance(self.success, bool) or self.severity is not None:
                raise ValueError(f"{_AUTHENTICATION} needs a success flag only")
        elif self.kind == _ANOMALY:
            if not isinstance(self.severity, AnomalySeverity) or self.success is not None:
                raise ValueError(f"{_ANOMALY} needs a severity only")
        else:
            raise ValueError(f"unknown audit event kind {self.kind!r}")

    @classmethod
    def authentication_attempt(cls, success: bool) -> AuditEventType:
        return cls(_AUTHENTICATION, success=success)

    @classmethod
    def anomaly_detected(cls, severity: AnomalySeverity) -> AuditEventType:
        return cls(_ANOMALY, severity=severity)

    @property
    def label(self) -> str:
        """Name used to group events in summaries."""
        if self.kind == _AUTHENTICATION:
            return f"{_AUTHENTICATION} {{ success: {str(self.success).lower()} }}"
        if self.kind == _ANOMALY:
            assert self.severity is not None
            return f"{_ANOMALY} {{ severity: {self.severity.value} }}"
        return self.kind


AuditEventType.KEY_GENERATION = AuditEventType("KeyGeneration")
AuditEventType.KEY_ROTATION = AuditEventType("KeyRotation")
AuditEventType.SIGNATURE_CREATION = AuditEventType("SignatureCreation")
AuditEventType.SIGNATURE_VERIFICATION = AuditEventType("SignatureVerification")
AuditEventType.TEMPLATE_GENERATION = AuditEventType("TemplateGeneration")
AuditEventType.TEMPLATE_VERIFICATION = AuditEventType("TemplateVerification")
AuditEventType.SECURITY_LEVEL_CHANGE = AuditEventType("SecurityLevelChange")
AuditEventType.SYSTEM_STARTUP = AuditEventType("SystemStartup")
AuditEventType.SYSTEM_SHUTDOWN = AuditEventType("SystemShutdown")


@dataclass(frozen=True)
class AuditEvent:
    """One recorded event."""

    id: uuid.UUID
    event_type: AuditEventType
    timestamp: datetime
    security_level: SecurityLevel
    component_id: uuid.UUID | None = None
    metadata: Any = None
    session_id: uuid.UUID | None = None


@dataclass
class AuditSummary:
    """Counts of the events in a period."""

    period_start: datetime
    period_end: datetime
    total_events: int
    events_by_type: dict[str, int]
    anomalies_detected: int
    security_level_changes: int


class AuditSystem:
    """Thread-safe audit log that drops events older than its retention period."""

    def __init__(self, retention_days: int, security_level: SecurityLevel) -> None:
        self._lock = threading.Lock()
        self._events: list[AuditEvent] = []
        self._closed = False
        self.retention_period = timedelta(days=retention_days)
        self.current_session = uuid.uuid4()
        self.metadata = CryptoMetadata(security_level)

    def _new_event(
        self,
        event_type: AuditEventType,
        component_id: uuid.UUID | None,
        metadata: Any,
    ) -> AuditEvent:
        return AuditEvent(
            id=uuid.uuid4(),
            event_type=event_type,
            timestamp=_utcnow(),
            security_level=self.metadata.security_level,
            component_id=component_id,
            metadata=metadata,
            session_id=self.current_session,
        )

    def _store(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    def _cleanup_locked(self) -> int:
        cutoff = _utcnow() - self.retention_period
        kept = [event for event in self._events if event.timestamp >= cutoff]
        removed = len(self._events) - len(kept)
        self._events = kept
        return removed

    def record_event(
        self,
        event_type: AuditEventType,
        component_id: uuid.UUID | None = None,
        metadata: Any = None,
    ) -> uuid.UUID:
        """Record an event and return its id; expired events are dropped."""
        event = self._new_event(event_type, component_id, metadata)
        with self._lock:
            self._events.append(event)
            self._cleanup_locked()
        return event.id

    def get_events(self, start_time: datetime, end_time: datetime) -> list[AuditEvent]:
        """Events whose timestamp lies in [start_time, end_time], oldest first."""
        if end_time < start_time:
            raise AuditError(INVALID_PERIOD)
        with self._lock:
            return [e for e in self._events if start_time <= e.timestamp <= end_time]

    def get_summary(self, start_time: datetime, end_time: datetime) -> AuditSummary:
        """Summarise the events in [start_time, end_time]."""
        events = self.get_events(start_time, end_time)
        by_type = Counter(event.event_type.label for event in events)
        anomalies = sum(1 for e in events if e.event_type.kind == _ANOMALY)
        level_changes = sum(
            1 for e in events if e.event_type == AuditEventType.SECURITY_LEVEL_CHANGE
        )
        return AuditSummary(
            period_start=start_time,
            period_end=end_time,
            total_events=len(events),
            events_by_type=dict(by_type),
            anomalies_detected=anomalies,
            security_level_changes=level_changes,
        )

    def cleanup_old_events(self) -> int:
        """Drop events older than the retention period; return how many went."""
        with self._lock:
            return self._cleanup_locked()

    def close(self) -> None:
        """Record a shutdown event for this session (once)."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._store(self._new_event(AuditEventType.SYSTEM_SHUTDOWN, None, None))

    def __enter__(self) -> AuditSystem:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()