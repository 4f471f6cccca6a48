"""Paramind reasoning tools - parallel reasoning and confidence scoring."""

from .confidence_engine import (
    ConfidenceAnalysis,
    ConfidenceContext,
    ConfidenceScoringEngine,
)
from .orchestrator import ReasoningOrchestrator, build_prompt
from .reasoning_types import (
    CANCELLED_ERROR,
    PathState,
    ReasoningPath,
    ReasoningSession,
    SessionMetadata,
    SessionState,
    VotingResult,
)
from .response_parser import ParsedResponse, parse_response
from .strategies import ReasoningStrategy, StrategyCatalog, load_catalog
from .voting import VotingEngine

__all__ = [
    # Orchestration
    "ReasoningOrchestrator",
    "build_prompt",
    "VotingEngine",
    # Strategies
    "ReasoningStrategy",
    "StrategyCatalog",
    "load_catalog",
    # Reasoning types
    "CANCELLED_ERROR",
    "PathState",
    "ReasoningPath",
    "ReasoningSession",
    "SessionMetadata",
    "SessionState",
    "VotingResult",
    # Parsing
    "ParsedResponse",
    "parse_response",
    # Confidence scoring
    "ConfidenceAnalysis",
    "ConfidenceContext",
    "ConfidenceScoringEngine",
]
