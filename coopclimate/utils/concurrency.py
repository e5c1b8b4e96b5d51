"""Locking helpers shared by the stores."""

from __future__ import annotations

from functools import wraps
from typing import Callable


def synchronized(func: Callable | None = None, *, lock_attr: str = "_lock") -> Callable:
    """Run a method while holding ``getattr(self, lock_attr)``.

    Usable bare (``@synchronized``) or with another lock attribute
    (``@synchronized(lock_attr="_write_lock")``). Instances without the
    attribute run unlocked.
    """

    def decorator(method: Callable) -> Callable:
        @wraps(method)
        def _wrapped(self, *args, **kwargs):
            lock = getattr(self, lock_attr, None)
            if lock is None:
                return method(self, *args, **kwargs)
            with lock:
                return method(self, *args, **kwargs)

        return _wrapped

    if func is not None:
        return decorator(func)
    return decorator
