"""Ecosystem detection: name patterns, context hints, confidence and strategy."""

from pkgrouter.detection.confidence import ConfidenceAggregator, merge_detections
from pkgrouter.detection.context import ContextMatcher, sanitize_hint
from pkgrouter.detection.patterns import PatternMatcher, is_valid_package_name
from pkgrouter.detection.strategy import ExecutionStrategySelector
from pkgrouter.detection.tables import DetectionTables, ManagerInfo

__all__ = [
    "ConfidenceAggregator",
    "ContextMatcher",
    "DetectionTables",
    "ExecutionStrategySelector",
    "ManagerInfo",
    "PatternMatcher",
    "is_valid_package_name",
    "merge_detections",
    "sanitize_hint",
]
