"""Logging setup and the call logger used by the storage bridge."""

from __future__ import annotations

import functools
import inspect
import logging
import platform
import time
from pathlib import Path
from typing import Any, Callable

from .config import get_user_config_dir

APP_NAME = "Nanning"
LOG_FILENAME = "nanning.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    *,
    level: int = logging.INFO,
    log_dir: str | Path | None = None,
    filename: str = LOG_FILENAME,
) -> logging.Logger:
    """Send records to stderr and to ``<log_dir>/nanning.log``.

    Handlers go on the root logger once; later calls leave them alone and
    just return the package logger. ``log_dir`` defaults to the user config
    directory.
    """

    package_logger = logging.getLogger("nanning")
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return package_logger

    directory = Path(log_dir) if log_dir is not None else get_user_config_dir(APP_NAME)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / filename

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        logging.FileHandler(log_path, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)

    package_logger.info(
        "Logging to %s", log_path, extra={"level": logging.getLevelName(level)}
    )
    package_logger.debug(
        "Runtime environment",
        extra={"python": platform.python_version(), "platform": platform.platform()},
    )
    return package_logger


def _short_repr(value: Any, limit: int = 200) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _describe_arguments(signature: inspect.Signature, args: tuple, kwargs: dict) -> str:
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return "unbound arguments"
    return ", ".join(
        f"{name}={_short_repr(value)}"
        for name, value in bound.arguments.items()
        if name != "self"
    )


def _describe_payload(data: Any) -> str:
    """Summarise a result payload without echoing document text."""
    if data is None:
        return "no data"
    if isinstance(data, (list, tuple)):
        return f"{len(data)} records"
    if isinstance(data, dict):
        if "id" in data:
            return f"record {data['id']!r}"
        return f"{len(data)} fields"
    return type(data).__name__


def log_call(
    *,
    logger: logging.Logger,
    level: int = logging.DEBUG,
    include_args: bool = True,
    exc_level: int = logging.ERROR,
    failure_level: int = logging.WARNING,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log each call to a bridge method and the envelope it returns.

    Successful envelopes are logged at ``level`` with a short summary of the
    payload. Envelopes with ``success=False`` are logged at
    ``failure_level`` with their message and error kind. Exceptions are
    logged at ``exc_level`` and re-raised.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(func)
        operation = func.__qualname__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if include_args:
                logger.log(
                    level,
                    "Calling %s(%s)",
                    operation,
                    _describe_arguments(signature, args, kwargs),
                )
            else:
                logger.log(level, "Calling %s", operation)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception:
                logger.log(
                    exc_level,
                    "%s raised after %.3fs",
                    operation,
                    time.perf_counter() - start,
                    exc_info=True,
                )
                raise
            elapsed = time.perf_counter() - start
            if getattr(result, "success", True) is False:
                logger.log(
                    failure_level,
                    "%s failed in %.3fs: %s (%s)",
                    operation,
                    elapsed,
                    getattr(result, "error", None),
                    getattr(result, "kind", None),
                )
            else:
                logger.log(
                    level,
                    "%s succeeded in %.3fs: %s",
                    operation,
                    elapsed,
                    _describe_payload(getattr(result, "data", result)),
                )
            return result

        return wrapper

    return decorator


__all__ = ["setup_logging", "log_call"]
