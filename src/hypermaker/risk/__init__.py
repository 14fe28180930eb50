"""Risk management: position ledger, limits, alerts and emergency stop."""

from .limits import EmergencyStop, RiskLimitEngine
from .metrics import RiskMetricsCalculator
from .models import (
    AlertLevel,
    AlertType,
    Portfolio,
    RecommendedAction,
    RiskAlert,
    RiskLimits,
    RiskMetrics,
    RiskStatus,
    RiskSummary,
    TradeRecord,
)
from .portfolio import FillResult, PositionLedger
from .risk_manager import RiskManager
from .settings import RiskSettings

__all__ = [
    "AlertLevel",
    "AlertType",
    "EmergencyStop",
    "FillResult",
    "Portfolio",
    "PositionLedger",
    "RecommendedAction",
    "RiskAlert",
    "RiskLimitEngine",
    "RiskLimits",
    "RiskManager",
    "RiskMetrics",
    "RiskMetricsCalculator",
    "RiskSettings",
    "RiskStatus",
    "RiskSummary",
    "TradeRecord",
]
