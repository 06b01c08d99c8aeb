"""Request epochs for discarding stale async continuations.

The text-generation client cannot cancel an in-flight call, so cancellation
is by convention: every async chain captures the epoch when it starts and
re-checks it after each await. start_module() and reset() advance the epoch,
which turns every older continuation into a no-op.
"""

import logging

logger = logging.getLogger(__name__)


class RequestGuard:
    def __init__(self) -> None:
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    def advance(self) -> int:
        """Invalidate every captured epoch and return the new one."""
        self._epoch += 1
        logger.debug("request epoch advanced to %d", self._epoch)
        return self._epoch

    def capture(self) -> int:
        return self._epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    def is_stale(self, epoch: int) -> bool:
        return epoch != self._epoch
