"""Visible resend countdown mirroring the server cooldown (UX only)."""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class ResendCountdown:
    seconds: int = 60
    clock: Callable[[], float] = field(default=time.monotonic)
    _ends_at: float | None = field(default=None, init=False, repr=False)

    def start(self, seconds: int | None = None) -> None:
        self._ends_at = self.clock() + (self.seconds if seconds is None else seconds)

    def remaining(self) -> int:
        if self._ends_at is None:
            return 0
        return max(0, math.ceil(self._ends_at - self.clock()))

    @property
    def active(self) -> bool:
        return self.remaining() > 0

    def reset(self) -> None:
        self._ends_at = None
