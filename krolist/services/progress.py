"""Completion percentage for one price update run."""

from typing import Callable, List

ProgressListener = Callable[[int, int, int], None]


class ProgressReporter:
    """Tracks completed/total for a run as a 0-100 integer percentage.

    The percentage never goes down during a run and is reset by start().
    Listeners receive (completed, total, percent) on every change.
    """

    def __init__(self):
        self.completed = 0
        self.total = 0
        self.percent = 0
        self._listeners: List[ProgressListener] = []

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.completed, self.total, self.percent)

    def start(self, total: int) -> None:
        self.completed = 0
        self.total = max(total, 0)
        self.percent = 0
        self._notify()

    def advance(self, completed: int) -> None:
        """Record how many operations have finished so far."""
        if self.total <= 0:
            return
        completed = min(max(completed, self.completed), self.total)
        percent = round(completed / self.total * 100)
        self.completed = completed
        self.percent = max(self.percent, min(percent, 100))
        self._notify()

    def finish(self) -> None:
        self.completed = self.total
        self.percent = 100
        self._notify()

    def reset(self) -> None:
        self.completed = 0
        self.total = 0
        self.percent = 0
        self._notify()
