"""Tracing of the nested phases of a deployment.

Phases are tracked in a context variable so concurrent tasks each see their
own stack of phases.
"""

import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


_PHASES: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "phases", default=()
)


def current_phase() -> str:
    """Return the label of the innermost phase, or an empty string."""
    return " > ".join(_PHASES.get())


@contextmanager
def trace_context(name: str) -> Generator[str, None, None]:
    """Log the start, duration and failure of a named phase."""
    token = _PHASES.set(_PHASES.get() + (name,))
    label = current_phase()
    start = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield label
    except Exception:
        _LOGGER.debug("[Trace] ! %s failed", label)
        raise
    finally:
        _PHASES.reset(token)
        _LOGGER.debug("[Trace] < %s (%0.2fs)", label, perf_counter() - start)
