"""Board state manager.

Holds the latest BoardState snapshot shared between the subscriber's reader
task and the foreground game loop, and notifies observers when it changes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ttt_bridge.models import BoardState

logger = logging.getLogger(__name__)


class BoardStateManager:
    """Manages the mirrored board.

    This class maintains:
    - The current board snapshot
    - Callbacks for state change notifications

    Snapshots are immutable, so a reader that grabbed one via
    get_current_state() never sees a half-applied update.
    """

    def __init__(self, initial: BoardState | None = None) -> None:
        """Initialize the state manager.

        Args:
            initial: Starting snapshot (defaults to an empty board, X to move)
        """
        self._current_state: BoardState = initial if initial is not None else BoardState()
        self._state_callbacks: list[Callable[[BoardState], None]] = []
        self._lock = threading.Lock()

    def get_current_state(self) -> BoardState:
        """Get the current board snapshot."""
        with self._lock:
            return self._current_state

    def update_state(self, new_state: BoardState) -> None:
        """Replace the current snapshot and notify observers.

        Args:
            new_state: The new board snapshot
        """
        with self._lock:
            self._current_state = new_state

        # Notify callbacks (outside lock)
        for callback in self._state_callbacks:
            try:
                callback(new_state)
            except Exception as e:
                # Log with callback identity for debugging, but don't crash the reader
                callback_name = getattr(callback, "__name__", repr(callback))
                logger.error(
                    "Error in state callback '%s': %s",
                    callback_name,
                    e,
                    exc_info=True,
                )

    def on_state_change(self, callback: Callable[[BoardState], None]) -> None:
        """Register a callback for state changes.

        Args:
            callback: Function to call with the new snapshot
        """
        self._state_callbacks.append(callback)
