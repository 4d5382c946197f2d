import dataclasses
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")

Listener = Callable[[T], None]


class Store(Generic[T]):
    """Observable state holder passed explicitly to the views that need it.

    ``subscribe`` returns the matching unsubscribe callable; call it on
    teardown. Listeners run synchronously, in subscription order, after every
    change.
    """

    def __init__(self, initial: T):
        self._state = initial
        self._listeners: List[Listener] = []

    @property
    def state(self) -> T:
        return self._state

    def set(self, state: T) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def update(self, **changes) -> T:
        self.set(dataclasses.replace(self._state, **changes))
        return self._state

    def subscribe(self, listener: Listener, *, emit_current: bool = False) -> Callable[[], None]:
        self._listeners.append(listener)
        if emit_current:
            listener(self._state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
