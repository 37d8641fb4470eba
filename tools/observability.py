"""Timing and outcome logs around calls to the Gemini API."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Any, Callable, ParamSpec, TypeVar

from wardrobe_app.logging_config import ensure_correlation_id, get_logger, log_event

LOGGER = get_logger(__name__)
P = ParamSpec("P")
R = TypeVar("R")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def instrument_call(call_name: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Log ``upstream_call_started`` and then ``_completed`` or ``_failed`` with a duration.

    Positional arguments are never logged; they carry prompt parts and images.
    Failures are re-raised unchanged.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            correlation_id = ensure_correlation_id()
            log_event(LOGGER, logging.INFO, "upstream_call_started", call=call_name, correlation_id=correlation_id)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                failure: dict[str, Any] = {"error_type": type(exc).__name__}
                status_code = getattr(exc, "status_code", None)
                if status_code is not None:
                    failure["status_code"] = status_code
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "upstream_call_failed",
                    call=call_name,
                    correlation_id=correlation_id,
                    duration_ms=_elapsed_ms(start),
                    exc_info=True,
                    **failure,
                )
                raise
            log_event(
                LOGGER,
                logging.INFO,
                "upstream_call_completed",
                call=call_name,
                correlation_id=correlation_id,
                duration_ms=_elapsed_ms(start),
            )
            return result

        return wrapper

    return decorator


__all__ = ["instrument_call"]
