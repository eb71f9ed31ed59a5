"""Core module - session lifecycle and the components it composes."""

from .exceptions import (
    MindEaseError, ValidationError, NotFoundError, SessionEndedError, PersistenceError,
)
from .trigger_detector import TriggerDetector, DEFAULT_RECALL_PHRASES
from .context_assembler import ContextAssembler, AssembledPrompt
from .summarization import SummarizationService, SummaryResult
from .locks import SessionLockRegistry
from .session_lifecycle import SessionLifecycle, ExchangeResult, EndSessionResult

__all__ = [
    'MindEaseError', 'ValidationError', 'NotFoundError', 'SessionEndedError', 'PersistenceError',
    'TriggerDetector', 'DEFAULT_RECALL_PHRASES',
    'ContextAssembler', 'AssembledPrompt',
    'SummarizationService', 'SummaryResult',
    'SessionLifecycle', 'SessionLockRegistry', 'ExchangeResult', 'EndSessionResult',
]
