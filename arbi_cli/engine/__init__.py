"""Scan engine contract and the default in-memory implementation."""

from arbi_cli.engine.autonomous import AutonomousEngine
from arbi_cli.engine.base import ArbitrageEngine, Scout
from arbi_cli.engine.models import (
    EngineStats,
    Opportunity,
    Product,
    ScanParameters,
)

__all__ = [
    "ArbitrageEngine",
    "AutonomousEngine",
    "EngineStats",
    "Opportunity",
    "Product",
    "ScanParameters",
    "Scout",
]
