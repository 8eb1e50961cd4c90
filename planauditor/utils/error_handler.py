"""Centralized error handler for planaudit commands."""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from typing import Any

import click

from planauditor.errors import ParseError, ValidationError
from planauditor.utils.logging import logger

from .constants import ERROR_LOG_FILE, PF_DIR


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that turns command failures into a ClickException.

    Plan input errors (ParseError, ValidationError) are reported without a
    traceback. Anything else is logged with its traceback and appended to
    .pf/error.log.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.Abort, click.ClickException):
            raise
        except (ParseError, ValidationError) as e:
            field = getattr(e, "field", None)
            detail = f" (field: {field})" if field else ""
            logger.error("Command '{cmd}' rejected input: {err}", cmd=func.__name__, err=str(e))
            raise click.ClickException(f"{type(e).__name__}: {e}{detail}") from e
        except Exception as e:
            PF_DIR.mkdir(parents=True, exist_ok=True)

            error_type = type(e).__name__
            error_msg = str(e)
            tb = traceback.format_exc()

            logger.opt(exception=True).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=error_msg,
            )

            with open(ERROR_LOG_FILE, "a", encoding="utf-8") as f:
                f.write("\n" + "=" * 80 + "\n")
                f.write(f"[{datetime.now().isoformat()}] Error in command: {func.__name__}\n")
                f.write("=" * 80 + "\n")
                f.write(f"{error_type}: {error_msg}\n\n")
                f.write(tb)
                f.write("=" * 80 + "\n\n")

            raise click.ClickException(
                f"{error_type}: {error_msg}\n\nFull traceback logged to: {ERROR_LOG_FILE}"
            ) from e

    return wrapper
