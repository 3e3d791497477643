"""Cancellable deferred call on logical time"""
from typing import Callable, Optional


class DeferredAction:
    """
    A single pending callback. Every schedule() or cancel() bumps the
    generation, and fire() only runs the callback for the current
    generation, so a superseded deadline can never execute.

    Time is whatever the caller supplies (milliseconds in recognition);
    nothing here reads a clock.
    """

    def __init__(self, callback: Callable[[float], None], delay: float):
        self.callback = callback
        self.delay = delay
        self.generation = 0
        self.deadline: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self.deadline is not None

    def schedule(self, now: float) -> int:
        """(Re)start the timer at now; returns the new generation"""
        self.generation += 1
        self.deadline = now + self.delay
        return self.generation

    def cancel(self):
        self.generation += 1
        self.deadline = None

    def fire(self, generation: int) -> bool:
        """Run the callback if generation is still current and a deadline is set"""
        if generation != self.generation or self.deadline is None:
            return False
        deadline = self.deadline
        self.deadline = None
        self.callback(deadline)
        return True

    def poll(self, now: float) -> bool:
        """Fire the pending callback when its deadline has passed"""
        if self.deadline is not None and self.deadline <= now:
            return self.fire(self.generation)
        return False
