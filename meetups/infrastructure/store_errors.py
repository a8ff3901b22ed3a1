# meetups/infrastructure/store_errors.py
import functools

from sqlalchemy.exc import (
    DBAPIError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)

from meetups.domain.errors import (
    FailedPreconditionError,
    StoreError,
    StoreUnavailableError,
)

_MISSING_SCHEMA_MARKERS = (
    "no such table",
    "no such index",
    "no such column",
    "does not exist",
    "undefinedtable",
    "undefinedcolumn",
)


def translate_store_error(exc: SQLAlchemyError) -> StoreError:
    text = str(exc).lower()
    if isinstance(exc, (OperationalError, ProgrammingError)) and any(
        marker in text for marker in _MISSING_SCHEMA_MARKERS
    ):
        return FailedPreconditionError()
    if isinstance(exc, OperationalError):
        return StoreUnavailableError()
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return StoreUnavailableError()
    return StoreError(f"Unexpected storage failure: {exc.__class__.__name__}")


def store_operation(func):
    """Rolls the session back and re-raises driver errors as StoreError."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise translate_store_error(exc) from exc

    return wrapper
