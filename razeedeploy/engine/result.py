import time
from dataclasses import dataclass
from typing import Optional


@dataclass
class OperationOutcome:
    success: bool
    kind: str
    name: Optional[str]
    namespace: Optional[str] = None


class RunResult:
    """Aggregate success of one invocation. It can only go from ok to failed."""

    def __init__(self):
        self._ok = True
        self.steps_ok = 0
        self.steps_fail = 0
        self.start = time.time()

    @property
    def ok(self) -> bool:
        return self._ok

    def fold(self, success: bool) -> bool:
        if success:
            self.steps_ok += 1
        else:
            self.steps_fail += 1
            self._ok = False
        return self._ok

    def fail(self) -> None:
        self.fold(False)

    @property
    def exit_code(self) -> int:
        return 0 if self._ok else 1

    @property
    def summary(self) -> str:
        dur = time.time() - self.start
        return f"steps_ok={self.steps_ok} steps_fail={self.steps_fail} duration_sec={round(dur, 2)}"
