from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from fastapi import Header

_current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)


def resolve_current_user_id() -> str | None:
    user_id = _current_user_id.get()
    if user_id is None:
        return None
    user_id = user_id.strip()
    return user_id or None


@contextmanager
def bound_user(user_id: str | None) -> Iterator[None]:
    token = _current_user_id.set(user_id)
    try:
        yield
    finally:
        _current_user_id.reset(token)


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    """FastAPI dependency: the caller's user id from the auth proxy, if any."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None
