"""Uniform success/failure results for repository operations.

Callers inspect results instead of catching exceptions::

    result = await movies.get_popular()
    if result.ok:
        page = result.value
    else:
        show(result.error.message)
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from filmhub.errors import FilmHubError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    ok = True

    @property
    def error(self) -> None:
        return None

    def get_or_none(self) -> T:
        return self.value

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: FilmHubError

    ok = False

    @property
    def message(self) -> str:
        return self.error.message

    def get_or_none(self) -> None:
        return None

    def unwrap(self):
        raise self.error


Result = Union[Success[T], Failure]


def as_filmhub_error(exc: BaseException) -> FilmHubError:
    """Map any exception onto the FilmHub taxonomy, keeping its message."""
    if isinstance(exc, FilmHubError):
        return exc
    return FilmHubError(str(exc) or type(exc).__name__)


def returns_result(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[Result]]:
    """Wrap a coroutine so it returns ``Success(value)`` or ``Failure(error)``.

    FilmHub errors are expected outcomes; anything else is logged with its
    traceback before being wrapped.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            return Success(await func(*args, **kwargs))
        except FilmHubError as e:
            logger.debug(f"{func.__qualname__} failed: {e.message}")
            return Failure(e)
        except Exception as e:
            logger.exception(f"{func.__qualname__} raised unexpectedly")
            return Failure(as_filmhub_error(e))

    return wrapper


def value_or(result: Result, default: Optional[Any] = None) -> Any:
    return result.value if result.ok else default
