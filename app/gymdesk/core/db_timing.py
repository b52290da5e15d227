from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass


@dataclass
class _DbTimer:
    elapsed_ms: float = 0.0
    query_count: int = 0


# Holds a mutable timer so threadpool/task copies of the context still add to it.
_db_timer: ContextVar[_DbTimer | None] = ContextVar("db_timer", default=None)


def start_db_timer() -> object:
    return _db_timer.set(_DbTimer())


def stop_db_timer(token) -> None:
    _db_timer.reset(token)


def add_db_time(delta_ms: float) -> None:
    timer = _db_timer.get()
    if timer is None:
        return
    timer.elapsed_ms += delta_ms
    timer.query_count += 1


def get_db_time_ms() -> float | None:
    timer = _db_timer.get()
    return timer.elapsed_ms if timer is not None else None


def get_db_query_count() -> int | None:
    timer = _db_timer.get()
    return timer.query_count if timer is not None else None
