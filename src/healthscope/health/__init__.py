"""Health journal models, context building and analysis extraction."""

from healthscope.health.analyzer import HealthAnalyzer
from healthscope.health.context import ContextBuilder, build_chat_context
from healthscope.health.extractor import extract_analysis
from healthscope.health.journal import Journal
from healthscope.health.models import (
    AnalysisResult,
    CustomMeasurement,
    HealthDataPoint,
    HealthNote,
    QuickLogEntry,
    QuickLogType,
)

__all__ = [
    "AnalysisResult",
    "ContextBuilder",
    "CustomMeasurement",
    "HealthAnalyzer",
    "HealthDataPoint",
    "HealthNote",
    "Journal",
    "QuickLogEntry",
    "QuickLogType",
    "build_chat_context",
    "extract_analysis",
]
