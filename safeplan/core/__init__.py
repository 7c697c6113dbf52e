from .state import BaseGraphState, BaseResult, generate_request_id
from .audit import append_event, best_effort_append
from .execution import GraphExecutor

__all__ = [
    'BaseGraphState',
    'BaseResult',
    'generate_request_id',
    'append_event',
    'best_effort_append',
    'GraphExecutor',
]
