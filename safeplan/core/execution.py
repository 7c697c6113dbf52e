from __future__ import annotations

from typing import Any, Dict, TypeVar, Callable

T = TypeVar('T')


class GraphExecutor:
    """Generic executor for compiled LangGraph graphs"""

    @staticmethod
    def execute(
        graph: Any,
        init_state: Dict[str, Any],
        to_result: Callable[[Dict[str, Any]], T]
    ) -> T:
        """Execute graph and convert the final state into a result"""
        final_state = graph.invoke(init_state)
        return to_result(final_state)
