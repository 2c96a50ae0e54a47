"""Request-scoped cancellation context passed into resolver calls."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from kube_carbon.errors import LookupCancelledError

__all__ = ["RequestContext"]


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Carry a cancellation signal and an optional deadline for one request.

    The context is shared between the dispatcher and every resolver call made
    on behalf of a single query. Cancelling it never aborts the estimate:
    resolvers observe the signal and substitute their fallback values.

    Attributes:
        deadline: Optional :func:`time.monotonic` instant after which the
            context counts as cancelled.
    """

    deadline: float | None = None
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def with_timeout(cls, seconds: float) -> RequestContext:
        """Return a context that expires ``seconds`` from now."""

        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Signal cancellation to every holder of this context."""

        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return ``True`` once cancelled or past the deadline."""

        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_cancelled(self) -> None:
        """Raise :class:`LookupCancelledError` when the context is done."""

        if self._event.is_set():
            raise LookupCancelledError("request context cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise LookupCancelledError("request context deadline exceeded")
