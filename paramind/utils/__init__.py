"""Utility modules for Paramind."""

from .complexity import ComplexityResult, analyze_complexity
from .errors import (
    ConfigException,
    InvalidTransitionError,
    LLMException,
    ParamindException,
    PatternStoreError,
    ReasoningException,
    SessionNotFoundError,
    ToolExecutionError,
    UnknownStrategyError,
)
from .events import EventBus, SessionEvent, SessionEventKind
from .retry import retry_with_backoff
from .risk import RiskAssessment, assess_risk
from .scoring import word_set_similarity
from .session import AsyncSessionManager, InMemorySessionStore, SessionStore

__all__ = [
    # Stages
    "ComplexityResult",
    "RiskAssessment",
    "analyze_complexity",
    "assess_risk",
    "word_set_similarity",
    # Errors
    "ConfigException",
    "InvalidTransitionError",
    "LLMException",
    "ParamindException",
    "PatternStoreError",
    "ReasoningException",
    "SessionNotFoundError",
    "ToolExecutionError",
    "UnknownStrategyError",
    # Infrastructure
    "AsyncSessionManager",
    "EventBus",
    "InMemorySessionStore",
    "SessionEvent",
    "SessionEventKind",
    "SessionStore",
    "retry_with_backoff",
]
