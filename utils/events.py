"""
In-process publish/subscribe for cross-cutting state changes.

Services publish after they commit a change to coins, experience or lesson
progress; interested parties (logging, notifications) subscribe by event type.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type

from utils.structured_logging import get_logger, LogCategory

logger = get_logger("events")


@dataclass(frozen=True)
class CoinsChanged:
    user_id: int
    total_coins: int
    delta: int


@dataclass(frozen=True)
class ExperienceChanged:
    user_id: int
    total_xp: int
    level: int
    previous_level: int

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


@dataclass(frozen=True)
class LessonCompleted:
    user_id: int
    lesson_id: int
    xp_awarded: int = 0
    coins_awarded: int = 0


class EventBus:
    def __init__(self):
        self._handlers: Dict[Type, List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Callable) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``; returns a callable that unsubscribes it"""
        self._handlers[event_type].append(handler)

        def unsubscribe():
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event) -> None:
        # Copy so handlers may unsubscribe while being called
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler failed for {type(event).__name__}",
                    category=LogCategory.SYSTEM,
                    exception=e,
                    extra={"handler": getattr(handler, "__name__", repr(handler))},
                )

    def clear(self, event_type: Optional[Type] = None) -> None:
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)


event_bus = EventBus()


def log_level_up(event: ExperienceChanged) -> None:
    if event.leveled_up:
        logger.info(
            f"User reached level {event.level}",
            category=LogCategory.PROGRESS,
            user_id=event.user_id,
            extra={"previous_level": event.previous_level, "total_xp": event.total_xp},
        )
