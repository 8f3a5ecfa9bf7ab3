"""Identity records: biometric template, behaviour profile and verification state."""

from __future__ import annotations

import dataclasses
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _now() -> int:
    return int(time.time())


class PatternType(Enum):
    """Kind of behaviour a pattern describes."""

    TIME_OF_DAY = "TimeOfDay"
    LOCATION = "Location"
    DEVICE_USAGE = "DeviceUsage"
    NETWORK_PATTERN = "NetworkPattern"
    INTERACTION_STYLE = "InteractionStyle"


class VerificationStatus(Enum):
    """Where an identity stands in its verification life cycle."""

    UNVERIFIED = "Unverified"
    PENDING = "Pending"
    VERIFIED = "Verified"
    SUSPENDED = "Suspended"
    REVOKED = "Revoked"


@dataclass
class BiometricTemplate:
    """Feature vector, its quality and its hash."""

    features: list[float]
    quality_score: float
    hash: str
    created_at: int = field(default_factory=_now)


@dataclass
class DeviceInfo:
    device_id: str
    device_type: str
    os_info: str
    first_seen: int
    last_seen: int


@dataclass
class BehaviorPattern:
    pattern_type: PatternType
    confidence: float
    occurrences: int
    last_seen: int


@dataclass
class BehaviorProfile:
    patterns: list[BehaviorPattern] = field(default_factory=list)
    trust_score: float = 0.0
    last_updated: int = field(default_factory=_now)


@dataclass
class IdentityMetadata:
    created_at: int = field(default_factory=_now)
    last_verified: int | None = None
    verification_count: int = 0
    risk_score: float = 0.0
    device_info: DeviceInfo | None = None


_DAY_SECONDS = 86400.0
_MIN_AGE_WEIGHT = 0.1
_OCCURRENCE_CAP = 10


@dataclass
class Identity:
    """A registered identity."""

    template: BiometricTemplate
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    metadata: IdentityMetadata = field(default_factory=IdentityMetadata)
    behavior_profile: BehaviorProfile = field(default_factory=BehaviorProfile)
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED

    def update_verification(self, verified: bool) -> None:
        """Count a verification attempt; a success marks the identity verified."""
        self.metadata.last_verified = _now()
        self.metadata.verification_count += 1
        if verified:
            self.verification_status = VerificationStatus.VERIFIED

    def update_behavior(self, pattern: BehaviorPattern) -> None:
        """Merge ``pattern`` into the profile and recompute the trust score."""
        existing = next(
            (p for p in self.behavior_profile.patterns if p.pattern_type == pattern.pattern_type),
            None,
        )
        if existing is None:
            self.behavior_profile.patterns.append(dataclasses.replace(pattern))
        else:
            existing.confidence = min(existing.confidence * 0.7 + pattern.confidence * 0.3, 1.0)
            existing.occurrences += 1
            existing.last_seen = pattern.last_seen
        self._recalculate_trust_score()

    def _recalculate_trust_score(self) -> None:
        now = _now()
        total_score = 0.0
        total_weight = 0.0
        for pattern in self.behavior_profile.patterns:
            age = max(now - pattern.last_seen, 0)
            age_weight = max(1.0 / (1.0 + age / _DAY_SECONDS), _MIN_AGE_WEIGHT)
            confidence_weight = (
                pattern.confidence * min(pattern.occurrences, _OCCURRENCE_CAP) / _OCCURRENCE_CAP
            )
            total_score += confidence_weight * age_weight
            total_weight += age_weight

        self.behavior_profile.trust_score = (
            min(total_score / total_weight, 1.0) if total_weight > 0.0 else 0.0
        )
        self.behavior_profile.last_updated = now


def _byte_field(data: Mapping[str, Any], name: str) -> bytes:
    if name not in data:
        raise ValueError(f"missing field {name!r}")
    try:
        return bytes(data[name])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"field {name!r} must be a sequence of bytes") from exc


@dataclass
class IdentityRequest:
    """Registration request carrying raw biometric and behaviour data."""

    biometric_data: bytes
    behavior_data: bytes

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IdentityRequest:
        """Build from a decoded JSON object with byte lists."""
        return cls(_byte_field(data, "biometric_data"), _byte_field(data, "behavior_data"))


@dataclass
class IdentityResponse:
    """Registration result: template id, proof bytes and timestamp."""

    template_id: str
    proof: bytes
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form with the proof as a list of byte values."""
        return {
            "template_id": self.template_id,
            "proof": list(self.proof),
            "timestamp": self.timestamp,
        }