"""Service layer helpers"""

from .intent_service import (
    FallbackIntentClassifier,
    FallbackResponder,
    HeuristicIntentClassifier,
    IntentClassifier,
    IntentService,
    LLMIntentClassifier,
    LLMResponder,
    Responder,
    TemplatedResponder,
)

__all__ = [
    "IntentService",
    "IntentClassifier",
    "HeuristicIntentClassifier",
    "LLMIntentClassifier",
    "FallbackIntentClassifier",
    "Responder",
    "TemplatedResponder",
    "LLMResponder",
    "FallbackResponder",
]
