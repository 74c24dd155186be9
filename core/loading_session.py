# core/loading_session.py

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from core.loading_metrics import LoadingMetricsRegistry
from core.loading_strategy import LoadingStrategy, StrategyCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadingState:
    """Observable state of a loading session"""
    is_loading: bool = True
    progress: float = 0
    error: Optional[str] = None
    status: str = 'idle'  # idle | loading | success | error


StateListener = Callable[[LoadingState], None]


class LoadingSession:
    """
    Loading lifecycle for a single call site.

    Sessions are independent of each other and of the preload queue; any
    number of them may be loading at once. Timing goes to the metrics
    registry under the session id.
    """

    def __init__(self,
                 session_id: str,
                 loading_type: str = 'component',
                 metrics: LoadingMetricsRegistry = None,
                 strategies: StrategyCatalog = None):
        self.session_id = session_id
        self.loading_type = loading_type
        self.metrics = metrics or LoadingMetricsRegistry()
        self.strategies = strategies or StrategyCatalog()
        self._state = LoadingState()
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> LoadingState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def progress(self) -> float:
        return self._state.progress

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def strategy(self) -> LoadingStrategy:
        return self.strategies.get_strategy(self.loading_type)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start_loading(self):
        self._set_state(is_loading=True, error=None, progress=0, status='loading')
        self.metrics.start_timing(self.session_id, self.loading_type)

    def update_progress(self, percent: float):
        self._set_state(progress=min(100, max(0, percent)))

    def finish_loading(self, success: bool = True, error_message: str = None):
        error = error_message if not success and error_message else self._state.error
        self._set_state(
            is_loading=False,
            progress=100,
            error=error,
            status='success' if success else 'error',
        )
        self.metrics.end_timing(self.session_id, success)

    def reset_loading(self):
        """Back to the initial state; recorded metrics are kept"""
        self._set_state(is_loading=True, error=None, progress=0, status='idle')

    def _set_state(self, **changes):
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Loading session %s listener failed", self.session_id)
