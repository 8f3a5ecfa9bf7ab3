"""Detection of tampering in protected memory regions by canaries, patterns and timing."""

from __future__ import annotations

import hashlib
import itertools
import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from types import MappingProxyType

logger = logging.getLogger(__name__)

CANARY_SIZE = 8
_CANARY_SLOTS = 4
_TIMING_LIMIT = timedelta(seconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryRegionType(Enum):
    """What a protected region holds."""

    KEY_MATERIAL = "KeyMaterial"
    BIOMETRIC_DATA = "BiometricData"
    TEMPLATE = "Template"
    GENERAL = "General"


class DetectionType(Enum):
    """How tampering was noticed."""

    CANARY_MODIFICATION = "CanaryModification"
    PATTERN_MISMATCH = "PatternMismatch"
    UNEXPECTED_MODIFICATION = "UnexpectedModification"
    TIMING_ANOMALY = "TimingAnomaly"


class AlertSeverity(Enum):
    """How serious an alert is."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class MemoryProtectionError(Exception):
    """Raised when a memory region cannot be protected."""


PROTECTION_FAILED = "Failed to protect memory region"
INVALID_SIZE = "Invalid region size"
ALREADY_PROTECTED = "Region already protected"


@dataclass
class MemoryRegion:
    """Book-keeping for one protected region."""

    id: str
    region_type: MemoryRegionType
    size: int
    canary_positions: list[int]
    pattern_hash: bytes
    last_check: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class PoisoningAlert:
    """A detected tampering event."""

    timestamp: datetime
    memory_region: str
    region_type: MemoryRegionType
    detection_type: DetectionType
    severity: AlertSeverity
    pattern_mismatch: tuple[int, ...] | None = None


@dataclass(frozen=True)
class _Pattern:
    """Byte sequence to look for; mask entries that are False match any byte."""

    sequence: bytes
    mask: tuple[bool, ...]
    severity: AlertSeverity

    def matches_at(self, data: bytes, offset: int) -> bool:
        return all(
            not must or data[offset + i] == byte
            for i, (byte, must) in enumerate(zip(self.sequence, self.mask))
        )


class AlertHandler(ABC):
    """Receives alerts and log events from a detector."""

    @abstractmethod
    def handle_alert(self, alert: PoisoningAlert) -> None:
        """React to a tampering alert."""

    @abstractmethod
    def log_event(self, event: str, severity: AlertSeverity) -> None:
        """Record a message at a level matching ``severity``."""


_LOG_LEVELS = {
    AlertSeverity.CRITICAL: logging.ERROR,
    AlertSeverity.HIGH: logging.ERROR,
    AlertSeverity.MEDIUM: logging.WARNING,
    AlertSeverity.LOW: logging.INFO,
}


class LoggingAlertHandler(AlertHandler):
    """Logs alerts and appends a line for each to a file."""

    def __init__(self, log_path: str | os.PathLike[str]) -> None:
        self.log_path = Path(log_path)

    def handle_alert(self, alert: PoisoningAlert) -> None:
        logger.error(
            "Memory poisoning detected: %s in region %s (%s)",
            alert.detection_type.value,
            alert.memory_region,
            alert.severity.value,
        )
        line = (
            f"{alert.timestamp.isoformat()}: {alert.detection_type.value} detected in "
            f"{alert.memory_region} (Type: {alert.region_type.value})\n"
        )
        try:
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(line)
        except OSError:
            logger.exception("Could not write alert to %s", self.log_path)

    def log_event(self, event: str, severity: AlertSeverity) -> None:
        logger.log(_LOG_LEVELS[severity], "%s", event)


class MemoryPoisonDetector:
    """Places canaries in registered buffers and checks them for tampering."""

    def __init__(self, alert_handler: AlertHandler) -> None:
        self.alert_handler = alert_handler
        self.check_interval = timedelta(milliseconds=100)
        self._lock = threading.RLock()
        self._regions: dict[str, MemoryRegion] = {}
        self._buffers: dict[str, bytearray | memoryview] = {}
        self._canary_values: dict[str, list[int]] = {}
        self._scan_patterns: list[_Pattern] = []
        self._last_full_scan = _utcnow()
        self._counter = itertools.count()

    @property
    def regions(self) -> Mapping[str, MemoryRegion]:
        """Read-only view of the registered regions."""
        return MappingProxyType(self._regions)

    @property
    def last_full_scan(self) -> datetime:
        """Time of the last scan that found every region intact."""
        return self._last_full_scan

    def protect_region(
        self,
        region: bytearray | memoryview,
        region_id: str,
        region_type: MemoryRegionType,
    ) -> None:
        """Write canaries into ``region`` and register it under ``region_id``."""
        if isinstance(region, memoryview):
            if region.readonly:
                raise MemoryProtectionError(PROTECTION_FAILED)
            region = region.cast("B")
        elif not isinstance(region, bytearray):
            raise MemoryProtectionError(PROTECTION_FAILED)

        canary = self.generate_canary()
        positions = self.calculate_canary_positions(len(region))
        canary_bytes = canary.to_bytes(CANARY_SIZE, "little")
        for pos in positions:
            if pos + CANARY_SIZE <= len(region):
                region[pos:pos + CANARY_SIZE] = canary_bytes

        memory_region = MemoryRegion(
            id=region_id,
            region_type=region_type,
            size=len(region),
            canary_positions=positions,
            pattern_hash=self.calculate_pattern_hash(bytes(region)),
        )
        with self._lock:
            self._regions[region_id] = memory_region
            self._buffers[region_id] = region
            self._canary_values[region_id] = [canary] * len(positions)

    def check_memory(self) -> bool:
        """Check every region; alert on each problem and return True if none was found."""
        now = _utcnow()
        is_safe = True
        with self._lock:
            for region_id, region in self._regions.items():
                canaries = self._canary_values.get(region_id)
                if canaries is None:
                    continue

                for pos, expected in zip(region.canary_positions, canaries):
                    if not self._verify_canary(region_id, pos, expected):
                        is_safe = False
                        self._alert(now, region, DetectionType.CANARY_MODIFICATION,
                                    AlertSeverity.CRITICAL)

                mismatches = self._check_patterns(region_id)
                if mismatches is not None:
                    is_safe = False
                    self._alert(now, region, DetectionType.PATTERN_MISMATCH,
                                AlertSeverity.HIGH, tuple(mismatches))

                if self._check_timing_anomalies(region, now):
                    is_safe = False
                    self._alert(now, region, DetectionType.TIMING_ANOMALY,
                                AlertSeverity.MEDIUM)

            if is_safe:
                self._last_full_scan = now
        return is_safe

    def _alert(
        self,
        now: datetime,
        region: MemoryRegion,
        detection_type: DetectionType,
        severity: AlertSeverity,
        mismatches: tuple[int, ...] | None = None,
    ) -> None:
        self.alert_handler.handle_alert(
            PoisoningAlert(
                timestamp=now,
                memory_region=region.id,
                region_type=region.region_type,
                detection_type=detection_type,
                severity=severity,
                pattern_mismatch=mismatches,
            )
        )

    def _verify_canary(self, region_id: str, position: int, expected: int) -> bool:
        buffer = self._buffers[region_id]
        if position + CANARY_SIZE > self._regions[region_id].size:
            # No canary was placed where it would not fit.
            return True
        if position + CANARY_SIZE > len(buffer):
            return False
        value = int.from_bytes(bytes(buffer[position:position + CANARY_SIZE]), "little")
        return value == expected

    def generate_canary(self) -> int:
        """Derive a fresh 64-bit canary from the current time."""
        stamp = time.time_ns().to_bytes(16, "little")
        serial = next(self._counter).to_bytes(8, "little")
        digest = hashlib.sha3_256(stamp + serial).digest()
        return int.from_bytes(digest[:CANARY_SIZE], "little")

    def calculate_canary_positions(self, region_size: int) -> list[int]:
        """Four evenly spaced offsets, plus the last 8 bytes for regions over 32 bytes."""
        interval = region_size // _CANARY_SLOTS
        positions = [i * interval for i in range(_CANARY_SLOTS)]
        if region_size > 32:
            positions.append(region_size - CANARY_SIZE)
        return positions

    def calculate_pattern_hash(self, region: bytes | bytearray | memoryview) -> bytes:
        """SHA3-256 digest of the region's contents."""
        return hashlib.sha3_256(bytes(region)).digest()

    def _check_patterns(self, region_id: str) -> list[int] | None:
        data = bytes(self._buffers[region_id])
        found = [
            offset
            for pattern in self._scan_patterns
            if pattern.sequence
            for offset in range(len(data) - len(pattern.sequence) + 1)
            if pattern.matches_at(data, offset)
        ]
        return found or None

    def _add_pattern(
        self,
        sequence: bytes,
        mask: Sequence[bool] | None = None,
        severity: AlertSeverity = AlertSeverity.HIGH,
    ) -> None:
        sequence = bytes(sequence)
        full_mask = tuple(mask) if mask is not None else (True,) * len(sequence)
        if len(full_mask) != len(sequence):
            raise ValueError("mask must be as long as the sequence")
        with self._lock:
            self._scan_patterns.append(_Pattern(sequence, full_mask, severity))

    def _check_timing_anomalies(self, region: MemoryRegion, now: datetime) -> bool:
        elapsed = now - region.last_check
        return elapsed > _TIMING_LIMIT and region.region_type is MemoryRegionType.KEY_MATERIAL