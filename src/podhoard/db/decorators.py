"""Decorators that turn SQLAlchemy failures into DatabaseOperationError."""

from collections.abc import Awaitable, Callable
from functools import wraps
import inspect
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import DatabaseOperationError


def _validate_id_path(func: Callable[..., Any], sig: inspect.Signature, path: str) -> None:
    """Fail at decoration time if ``path`` does not start at a parameter.

    Args:
        func: The function being decorated.
        sig: Its signature.
        path: Dotted path such as ``"entry.feed_id"``.

    Raises:
        TypeError: If the first path segment names no parameter.
    """
    base_param = path.split(".", 1)[0]
    if base_param not in sig.parameters:
        raise TypeError(
            f"Decorator on '{func.__name__}' specifies path '{path}', "
            f"but the function has no parameter named '{base_param}'."
        )


def _extract_value_from_path(
    bound_args: inspect.BoundArguments, path: str
) -> str | None:
    """Follow a dotted path through the bound call arguments.

    Returns:
        The value as a string, or None if any segment is missing.
    """
    base_param, *attrs = path.split(".")
    value: Any = bound_args.arguments.get(base_param)
    for attr in attrs:
        if value is None:
            break
        value = getattr(value, attr, None)
    return None if value is None else str(value)


def _base_db_error_handler[**P, T](
    operation: str,
    id_paths: dict[str, str] | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Build a decorator that wraps SQLAlchemyError with identifiers attached.

    Args:
        operation: Phrase completing "Failed to ..." in the error message.
        id_paths: Maps error keyword (``feed_id``) to an argument path
            (``feed.id``).

    Returns:
        The decorator.
    """
    paths = id_paths or {}

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        sig = inspect.signature(func)
        for path in paths.values():
            _validate_id_path(func, sig, path)

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                bound_args = sig.bind_partial(*args, **kwargs)
                bound_args.apply_defaults()
                identifiers = {
                    id_name: _extract_value_from_path(bound_args, path)
                    for id_name, path in paths.items()
                }
                raise DatabaseOperationError(
                    f"Failed to {operation}", **identifiers
                ) from e

        return wrapper

    return decorator


def handle_db_errors[**P, T](
    operation: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Wrap SQLAlchemyError for operations with no feed or entry context."""
    return _base_db_error_handler(operation=operation)


def handle_feed_db_errors[**P, T](
    operation: str,
    feed_id_from: str = "feed_id",
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Wrap SQLAlchemyError, reporting the feed_id found at ``feed_id_from``."""
    return _base_db_error_handler(
        operation=operation, id_paths={"feed_id": feed_id_from}
    )


def handle_entry_db_errors[**P, T](
    operation: str,
    entry_id_from: str = "entry_id",
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Wrap SQLAlchemyError, reporting the entry_id found at ``entry_id_from``."""
    return _base_db_error_handler(
        operation=operation, id_paths={"entry_id": entry_id_from}
    )
