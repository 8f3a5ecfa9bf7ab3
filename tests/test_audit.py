import uuid
from datetime import datetime, timedelta, timezone

import pytest

from qidentity.audit import (
    AnomalySeverity,
    AuditError,
    AuditEvent,
    AuditEventType,
    AuditSystem,
)
from qidentity.crypto_types import SecurityLevel


def _now():
    return datetime.now(timezone.utc)


def test_audit_event_recording():
    audit = AuditSystem(30, SecurityLevel.STANDARD)
    component = uuid.uuid4()
    event_id = audit.record_event(AuditEventType.KEY_GENERATION, component, None)

    events = audit.get_events(_now() - timedelta(hours=1), _now())
    assert events
    assert any(e.id == event_id for e in events)
    recorded = next(e for e in events if e.id == event_id)
    assert recorded.component_id == component
    assert recorded.session_id == audit.current_session
    assert recorded.security_level is SecurityLevel.STANDARD


def test_audit_summary():
    audit = AuditSystem(30, SecurityLevel.STANDARD)
    for _ in range(5):
        audit.record_event(AuditEventType.KEY_GENERATION, None, None)
    audit.record_event(AuditEventType.anomaly_detected(AnomalySeverity.HIGH), None, None)

    summary = audit.get_summary(_now() - timedelta(hours=1), _now())
    assert summary.total_events == 6
    assert summary.anomalies_detected == 1
    assert summary.events_by_type["KeyGeneration"] == 5
    assert summary.events_by_type["AnomalyDetected { severity: High }"] == 1
    assert summary.security_level_changes == 0


def test_retention_period():
    audit = AuditSystem(1, SecurityLevel.STANDARD)
    old_time = _now() - timedelta(days=2)
    audit._store(
        AuditEvent(
            id=uuid.uuid4(),
            event_type=AuditEventType.KEY_GENERATION,
            timestamp=old_time,
            security_level=SecurityLevel.STANDARD,
        )
    )

    assert audit.cleanup_old_events() == 1
    assert audit.get_events(old_time, _now()) == []


def test_recent_events_survive_cleanup():
    audit = AuditSystem(1, SecurityLevel.BASIC)
    event_id = audit.record_event(AuditEventType.KEY_ROTATION, None, None)
    assert audit.cleanup_old_events() == 0
    ids = [e.id for e in audit.get_events(_now() - timedelta(hours=1), _now())]
    assert ids == [event_id]


def test_invalid_period_rejected():
    audit = AuditSystem(30, SecurityLevel.STANDARD)
    with pytest.raises(AuditError, match="Invalid audit period"):
        audit.get_events(_now(), _now() - timedelta(hours=1))


def test_security_level_changes_counted():
    audit = AuditSystem(30, SecurityLevel.HIGH)
    audit.record_event(AuditEventType.SECURITY_LEVEL_CHANGE, None, {"to": "High"})
    audit.record_event(AuditEventType.authentication_attempt(True), None, None)
    summary = audit.get_summary(_now() - timedelta(minutes=5), _now())
    assert summary.security_level_changes == 1
    assert summary.events_by_type["AuthenticationAttempt { success: true }"] == 1


def test_events_outside_period_excluded():
    audit = AuditSystem(30, SecurityLevel.STANDARD)
    audit.record_event(AuditEventType.KEY_GENERATION, None, None)
    future = _now() + timedelta(hours=1)
    assert audit.get_events(future, future + timedelta(hours=1)) == []


def test_close_records_shutdown_once():
    audit = AuditSystem(30, SecurityLevel.STANDARD)
    start = _now() - timedelta(minutes=1)
    audit.close()
    audit.close()
    events = audit.get_events(start, _now())
    assert [e.event_type for e in events] == [AuditEventType.SYSTEM_SHUTDOWN]
    assert events[0].session_id == audit.current_session


def test_metadata_kept():
    audit = AuditSystem(30, SecurityLevel.STANDARD)
    event_id = audit.record_event(AuditEventType.SIGNATURE_CREATION, None, {"k": 1})
    event = next(e for e in audit.get_events(_now() - timedelta(hours=1), _now()) if e.id == event_id)
    assert event.metadata == {"k": 1}


def test_event_type_validation():
    with pytest.raises(ValueError):
        AuditEventType("Bogus")
    with pytest.raises(ValueError):
        AuditEventType("KeyGeneration", success=True)
    with pytest.raises(ValueError):
        AuditEventType("AnomalyDetected")
    assert AuditEventType("KeyGeneration") == AuditEventType.KEY_GENERATION