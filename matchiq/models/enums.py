"""Enums shared by the matching models."""

import enum


class ProspectType(str, enum.Enum):
    INVESTOR = "investor"
    TARGET = "target"


class MatchStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DISMISSED = "dismissed"
    CONVERTED = "converted"


class MatchTier(str, enum.Enum):
    EXCELLENT = "excellent"
    STRONG = "strong"
    GOOD = "good"
    FAIR = "fair"
    LOW = "low"


class DealStatus(str, enum.Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    CLOSED = "closed"
