from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_CLEAR_DELAY = 0.025
DEFAULT_AFFORDANCE_OFFSET_X = 10.0


class Pane(str, Enum):
    ORIGINAL = "original"
    TRANSLATED = "translated"


class HoverState(str, Enum):
    IDLE = "idle"
    HOVERED = "hovered"
    BUSY = "busy"
    HOVERED_AND_BUSY = "hovered_and_busy"


class HoverEvent(str, Enum):
    ENTER = "enter"
    # Another sentence became active.
    DEACTIVATE = "deactivate"
    # The debounced clear fired for this sentence.
    CLEAR = "clear"
    BUSY_START = "busy_start"
    BUSY_END = "busy_end"


# Pairs missing from the table leave the state unchanged. A busy sentence
# ignores CLEAR, so in-flight translations keep their highlight.
TRANSITIONS: dict[tuple[HoverState, HoverEvent], HoverState] = {
    (HoverState.IDLE, HoverEvent.ENTER): HoverState.HOVERED,
    (HoverState.IDLE, HoverEvent.BUSY_START): HoverState.BUSY,
    (HoverState.HOVERED, HoverEvent.DEACTIVATE): HoverState.IDLE,
    (HoverState.HOVERED, HoverEvent.CLEAR): HoverState.IDLE,
    (HoverState.HOVERED, HoverEvent.BUSY_START): HoverState.HOVERED_AND_BUSY,
    (HoverState.BUSY, HoverEvent.ENTER): HoverState.HOVERED_AND_BUSY,
    (HoverState.BUSY, HoverEvent.BUSY_END): HoverState.IDLE,
    (HoverState.HOVERED_AND_BUSY, HoverEvent.DEACTIVATE): HoverState.BUSY,
    (HoverState.HOVERED_AND_BUSY, HoverEvent.BUSY_END): HoverState.HOVERED,
}


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


@dataclass(frozen=True, slots=True)
class Rect:
    top: float
    left: float
    right: float
    bottom: float

    @property
    def height(self) -> float:
        return self.bottom - self.top


@dataclass(frozen=True, slots=True)
class Affordance:
    sentence_id: str
    x: float
    y: float


class HoverSynchronizer:
    """
    Keep one active sentence across both panes.

    Pointer events arrive from either pane. Clearing the active sentence is
    debounced because leave/enter pairs fire in bursts while the pointer
    crosses inline markup inside a single sentence. Sentences with a
    translation in flight stay highlighted until it resolves.
    """

    def __init__(
        self,
        *,
        has_translation: Callable[[str], bool],
        scheduler: Scheduler | None = None,
        clear_delay: float = DEFAULT_CLEAR_DELAY,
        affordance_offset_x: float = DEFAULT_AFFORDANCE_OFFSET_X,
    ) -> None:
        self._has_translation = has_translation
        self._scheduler = scheduler
        self.clear_delay = clear_delay
        self.affordance_offset_x = affordance_offset_x
        self._states: dict[str, HoverState] = {}
        self._active_id: str | None = None
        self._affordance: Affordance | None = None
        self._affordance_hovered = False
        self._pending_clear: TimerHandle | None = None
        self._listeners: list[Callable[["HoverSynchronizer"], None]] = []

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def affordance(self) -> Affordance | None:
        return self._affordance

    @property
    def affordance_hovered(self) -> bool:
        return self._affordance_hovered

    @property
    def clear_pending(self) -> bool:
        return self._pending_clear is not None

    def state(self, sentence_id: str) -> HoverState:
        return self._states.get(sentence_id, HoverState.IDLE)

    def is_busy(self, sentence_id: str) -> bool:
        return self.state(sentence_id) in (HoverState.BUSY, HoverState.HOVERED_AND_BUSY)

    def busy_ids(self) -> set[str]:
        return {sentence_id for sentence_id in self._states if self.is_busy(sentence_id)}

    def highlighted_ids(self) -> set[str]:
        highlighted = self.busy_ids()
        if self._active_id is not None:
            highlighted.add(self._active_id)
        return highlighted

    def subscribe(self, listener: Callable[["HoverSynchronizer"], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def enter(self, sentence_id: str, pane: Pane | str, rect: Rect | None = None) -> None:
        pane = Pane(pane)
        self._cancel_pending_clear()
        previous = self._active_id
        if previous == sentence_id and self.state(sentence_id) in (
            HoverState.HOVERED,
            HoverState.HOVERED_AND_BUSY,
        ):
            return
        if previous is not None and previous != sentence_id:
            self._apply(previous, HoverEvent.DEACTIVATE)
        self._active_id = sentence_id
        self._apply(sentence_id, HoverEvent.ENTER)
        if pane is Pane.ORIGINAL and rect is not None and not self._has_translation(sentence_id):
            self._affordance = Affordance(
                sentence_id=sentence_id,
                x=rect.right + self.affordance_offset_x,
                y=rect.top,
            )
        else:
            self._affordance = None
        self._notify()

    def leave(self, sentence_id: str | None = None) -> None:
        if sentence_id is not None and sentence_id != self._active_id:
            return
        self._schedule_clear()

    def affordance_enter(self) -> None:
        self._cancel_pending_clear()
        self._affordance_hovered = True

    def affordance_leave(self) -> None:
        self._affordance_hovered = False
        self._schedule_clear()

    def mark_busy(self, sentence_id: str) -> None:
        self._apply(sentence_id, HoverEvent.BUSY_START)
        self._notify()

    def mark_idle(self, sentence_id: str, *, resolved: bool = True) -> None:
        """
        End the busy phase of a sentence.

        Only a resolved translation clears the highlight. After a failure the
        sentence stays active with its affordance so the user can retry.
        """
        self._apply(sentence_id, HoverEvent.BUSY_END)
        if resolved and sentence_id == self._active_id:
            self._affordance_hovered = False
            self._schedule_clear()
        self._notify()

    def reset(self) -> None:
        self._cancel_pending_clear()
        if self._active_id is not None:
            self._apply(self._active_id, HoverEvent.DEACTIVATE)
        self._active_id = None
        self._affordance = None
        self._affordance_hovered = False
        self._notify()

    def _apply(self, sentence_id: str, event: HoverEvent) -> HoverState:
        current = self.state(sentence_id)
        target = TRANSITIONS.get((current, event), current)
        if target is HoverState.IDLE:
            self._states.pop(sentence_id, None)
        else:
            self._states[sentence_id] = target
        if target is not current:
            logger.debug("hover %s: %s --%s--> %s", sentence_id, current.value, event.value, target.value)
        return target

    def _resolve_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def _schedule_clear(self) -> None:
        self._cancel_pending_clear()
        if self._active_id is None:
            return
        self._pending_clear = self._resolve_scheduler().call_later(
            self.clear_delay, self._fire_clear
        )

    def _cancel_pending_clear(self) -> None:
        if self._pending_clear is not None:
            self._pending_clear.cancel()
            self._pending_clear = None

    def _fire_clear(self) -> None:
        self._pending_clear = None
        sentence_id = self._active_id
        if sentence_id is None:
            return
        if self._affordance_hovered or self.is_busy(sentence_id):
            return
        self._apply(sentence_id, HoverEvent.CLEAR)
        self._active_id = None
        self._affordance = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


__all__ = [
    "Affordance",
    "DEFAULT_AFFORDANCE_OFFSET_X",
    "DEFAULT_CLEAR_DELAY",
    "HoverEvent",
    "HoverState",
    "HoverSynchronizer",
    "Pane",
    "Rect",
    "Scheduler",
    "TRANSITIONS",
    "TimerHandle",
]
