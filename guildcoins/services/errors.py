"""
guildcoins.services.errors — Ledger Error Taxonomy & Classification
====================================================================

Every failure that leaves the service layer is one of the
:class:`LedgerError` subclasses below.  Each carries:

* ``code`` — stable machine-readable tag for the API envelope.
* ``http_status`` — what the API answers with.
* ``message_key`` — i18n key the bot renders for humans.
* ``retryable`` — only ``PersistenceUnavailable`` is.

Service functions are wrapped with :func:`ledger_operation`, which funnels
anything unexpected through :func:`classify` so there is exactly one place
that decides what a database error means to a caller.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, ClassVar, ParamSpec, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from guildcoins.database.faults import PersistenceFault, fault_of
from guildcoins.i18n import t

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------
class LedgerError(Exception):
    """Base class for caller-facing ledger failures."""

    code: ClassVar[str] = "INTERNAL"
    http_status: ClassVar[int] = 500
    default_key: ClassVar[str] = "errors.internal"
    retryable: ClassVar[bool] = False

    def __init__(self, detail: str | None = None, *, message_key: str | None = None) -> None:
        self.message_key = message_key or self.default_key
        # ``detail`` is for logs; callers get the translated message.
        self.detail = detail or self.message_key
        super().__init__(self.detail)

    def message(self, locale: str | None = None) -> str:
        return t(self.message_key, locale=locale)

    def to_dict(self, locale: str | None = None) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message(locale),
            "retryable": self.retryable,
        }


class InvalidAmount(LedgerError):
    code = "INVALID_AMOUNT"
    http_status = 400
    default_key = "errors.invalid_amount"


class BadRequest(LedgerError):
    code = "BAD_REQUEST"
    http_status = 400
    default_key = "errors.bad_request"


class Unauthorized(LedgerError):
    code = "UNAUTHORIZED"
    http_status = 401
    default_key = "errors.unauthorized"


class UserNotFound(LedgerError):
    code = "USER_NOT_FOUND"
    http_status = 404
    default_key = "errors.user_not_found"


class InsufficientBalance(LedgerError):
    code = "INSUFFICIENT_BALANCE"
    http_status = 409
    default_key = "errors.insufficient_balance"


class DuplicateIdentity(LedgerError):
    code = "DUPLICATE_IDENTITY"
    http_status = 409
    default_key = "errors.duplicate_identity"


class PersistenceUnavailable(LedgerError):
    code = "PERSISTENCE_UNAVAILABLE"
    http_status = 503
    default_key = "errors.persistence_unavailable"
    retryable = True


class Internal(LedgerError):
    pass


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
def classify_validation_errors(errors: Iterable[Mapping[str, Any]]) -> LedgerError:
    """Map schema-validation errors (pydantic / FastAPI) to a ledger error.

    A failure on any ``coins`` field is an :class:`InvalidAmount`; anything
    else is a plain :class:`BadRequest`.
    """
    errors = list(errors)
    summary = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in errors
    )
    if any("coins" in err.get("loc", ()) for err in errors):
        return InvalidAmount(summary)
    return BadRequest(summary)


def classify_persistence_error(error: SQLAlchemyError) -> LedgerError:
    match fault_of(error):
        case PersistenceFault.UNIQUE_VIOLATION:
            return DuplicateIdentity(str(error))
        case PersistenceFault.CHECK_VIOLATION:
            return InsufficientBalance(str(error))
        case PersistenceFault.VALUE_TOO_LONG:
            return BadRequest(str(error))
        case PersistenceFault.OUT_OF_RANGE:
            return InvalidAmount(str(error))
        case PersistenceFault.UNAVAILABLE:
            return PersistenceUnavailable(str(error))
        case PersistenceFault.OTHER:
            return Internal(str(error))


def classify(error: BaseException) -> LedgerError:
    """Return the :class:`LedgerError` a caller should see for *error*."""
    if isinstance(error, LedgerError):
        return error
    if isinstance(error, ValidationError):
        return classify_validation_errors(error.errors())
    if isinstance(error, SQLAlchemyError):
        return classify_persistence_error(error)
    return Internal(f"{type(error).__name__}: {error}")


def ledger_operation(func: Callable[P, T]) -> Callable[P, T]:
    """Decorator: run *func*, re-raise any failure as a classified error."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except LedgerError:
            raise
        except Exception as exc:
            classified = classify(exc)
            if isinstance(classified, Internal):
                logger.exception("%s failed unexpectedly", func.__name__)
            elif isinstance(classified, PersistenceUnavailable):
                logger.warning("%s: database unavailable: %s", func.__name__, exc)
            else:
                logger.info("%s rejected: %s (%s)", func.__name__, classified.code, exc)
            raise classified from exc

    return wrapper
