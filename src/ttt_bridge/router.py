"""Topic router and board reducer.

Classifies each inbound (topic, payload) pair against the known subtopics and
applies it to the BoardStateManager. Status and move messages do not touch
the board; they are surfaced as announcements for the UI to print.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict

from ttt_bridge.models import CELL_COUNT, BoardState, InboundEvent, Mark
from ttt_bridge.protocol import (
    BOARD_SUBTOPIC,
    DEFAULT_TOPIC_ROOT,
    MOVES_SUBTOPIC,
    PLAYER_SUBTOPIC,
    STATUS_DRAW,
    STATUS_RESET,
    STATUS_SUBTOPIC,
    STATUS_WINS_MARKER,
    subtopic,
)
from ttt_bridge.state import BoardStateManager

logger = logging.getLogger(__name__)


class AnnouncementKind(str, Enum):
    """Kinds of side-effect-only messages."""

    WIN = "win"
    DRAW = "draw"
    RESET = "reset"
    MOVE = "move"


class Announcement(BaseModel):
    """A status or move notice raised by an inbound message."""

    model_config = ConfigDict(frozen=True)

    kind: AnnouncementKind
    payload: str


class RouteResult(str, Enum):
    """Which handler an event was dispatched to."""

    BOARD = "board"
    PLAYER = "player"
    STATUS = "status"
    MOVES = "moves"
    IGNORED = "ignored"


class TopicRouter:
    """Routes subscriber events onto the board.

    Classification order is board, player, status, moves; the first match
    wins. board/player/status require an exact topic match under the root;
    moves matches any topic containing "moves".

    Attributes:
        topic_root: Root of the topic tree
    """

    def __init__(
        self,
        state_manager: BoardStateManager,
        topic_root: str = DEFAULT_TOPIC_ROOT,
    ) -> None:
        """Initialize the router.

        Args:
            state_manager: Manager holding the mirrored board
            topic_root: Root of the topic tree
        """
        self._state_manager = state_manager
        self.topic_root = topic_root
        self._board_topic = subtopic(topic_root, BOARD_SUBTOPIC)
        self._player_topic = subtopic(topic_root, PLAYER_SUBTOPIC)
        self._status_topic = subtopic(topic_root, STATUS_SUBTOPIC)
        self._announcement_callbacks: list[Callable[[Announcement], None]] = []

    def on_announcement(self, callback: Callable[[Announcement], None]) -> None:
        """Register a callback for status and move announcements.

        Args:
            callback: Function to call with each Announcement
        """
        self._announcement_callbacks.append(callback)

    def dispatch(self, event: InboundEvent) -> RouteResult:
        """Apply a parsed event."""
        return self.apply(event.topic, event.payload)

    def apply(self, topic: str, payload: str) -> RouteResult:
        """Apply one message to the board.

        Never raises for bad input; unknown topics are ignored.

        Args:
            topic: Full topic the message arrived on
            payload: Message body

        Returns:
            The handler the message was routed to
        """
        if topic == self._board_topic:
            self._apply_board(payload)
            return RouteResult.BOARD

        if topic == self._player_topic:
            self._apply_player(payload)
            return RouteResult.PLAYER

        if topic == self._status_topic:
            self._apply_status(payload)
            return RouteResult.STATUS

        if MOVES_SUBTOPIC in topic:
            self._announce(AnnouncementKind.MOVE, payload)
            return RouteResult.MOVES

        logger.debug("Ignoring message on unrecognised topic %s", topic)
        return RouteResult.IGNORED

    def _apply_board(self, payload: str) -> None:
        if len(payload) != CELL_COUNT:
            logger.warning(
                "Board payload has %d cells, expected %d: %r",
                len(payload),
                CELL_COUNT,
                payload,
            )
        current = self._state_manager.get_current_state()
        new_state = BoardState.from_flat(payload, current_player=current.current_player)
        self._state_manager.update_state(new_state)

    def _apply_player(self, payload: str) -> None:
        if not payload:
            logger.debug("Empty player payload, ignoring")
            return
        try:
            player = Mark(payload[0])
        except ValueError:
            logger.warning("Unknown player mark %r, ignoring", payload[0])
            return
        current = self._state_manager.get_current_state()
        self._state_manager.update_state(current.with_player(player))

    def _apply_status(self, payload: str) -> None:
        # The grid itself is reset by the board message that follows
        if STATUS_WINS_MARKER in payload:
            self._announce(AnnouncementKind.WIN, payload)
        elif payload == STATUS_DRAW:
            self._announce(AnnouncementKind.DRAW, payload)
        elif payload == STATUS_RESET:
            self._announce(AnnouncementKind.RESET, payload)
        else:
            logger.debug("Ignoring status payload %r", payload)

    def _announce(self, kind: AnnouncementKind, payload: str) -> None:
        announcement = Announcement(kind=kind, payload=payload)
        for callback in self._announcement_callbacks:
            try:
                callback(announcement)
            except Exception as e:
                callback_name = getattr(callback, "__name__", repr(callback))
                logger.error(
                    "Error in announcement callback '%s': %s",
                    callback_name,
                    e,
                    exc_info=True,
                )
