import inspect
from datetime import datetime
from typing import Any, Callable, Dict, List, NamedTuple

__all__ = [
    'Event', 'EventBus',
    'EXPENSE_RECORDED', 'BUDGET_ALERT', 'GOAL_PROGRESS',
    'COLLABORATION_INVITED', 'COLLABORATION_RESPONDED',
]

EXPENSE_RECORDED = "EXPENSE_RECORDED"
BUDGET_ALERT = "BUDGET_ALERT"
GOAL_PROGRESS = "GOAL_PROGRESS"
COLLABORATION_INVITED = "COLLABORATION_INVITED"
COLLABORATION_RESPONDED = "COLLABORATION_RESPONDED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], Any]


class EventBus:
    """Publish/subscribe by event name. Handlers may be plain or coroutine functions."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        if name not in self._subscribers:
            self._subscribers[name] = []
        self._subscribers[name].append(handler)

    async def publish(self, name: str, payload: dict) -> List[Any]:
        if name not in self._subscribers:
            return []

        event = Event(
            name=name,
            ts=datetime.now().isoformat(),
            payload=payload
        )

        results = []
        for handler in list(self._subscribers[name]):
            result = handler(event, payload)
            if inspect.isawaitable(result):
                result = await result
            results.append(result)
        return results

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if name in self._subscribers:
            if handler in self._subscribers[name]:
                self._subscribers[name].remove(handler)
