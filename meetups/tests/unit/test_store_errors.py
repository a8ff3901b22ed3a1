# meetups/tests/unit/test_store_errors.py
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from meetups.domain.errors import (
    FailedPreconditionError,
    StoreError,
    StoreUnavailableError,
)
from meetups.infrastructure.store_errors import store_operation, translate_store_error


def operational(message: str) -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception(message))


@pytest.mark.parametrize(
    "exc, expected",
    [
        (operational("no such table: chats"), FailedPreconditionError),
        (operational("no such index: ix_chats_last_message_at"), FailedPreconditionError),
        (operational("database is locked"), StoreUnavailableError),
        (IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")), StoreError),
    ],
)
def test_translate_store_error(exc, expected):
    assert type(translate_store_error(exc)) is expected


class FakeGateway:
    def __init__(self, error=None):
        self.session = AsyncMock()
        self.error = error

    @store_operation
    async def run(self, value):
        if self.error is not None:
            raise self.error
        return value


async def test_store_operation_passes_results_through():
    gateway = FakeGateway()
    assert await gateway.run(42) == 42
    gateway.session.rollback.assert_not_called()


async def test_store_operation_rolls_back_and_translates():
    gateway = FakeGateway(operational("disk I/O error"))

    with pytest.raises(StoreUnavailableError) as exc_info:
        await gateway.run(1)

    gateway.session.rollback.assert_awaited_once()
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert exc_info.value.status_code == 503


async def test_domain_errors_are_not_wrapped():
    gateway = FakeGateway(FailedPreconditionError())

    with pytest.raises(FailedPreconditionError):
        await gateway.run(1)
    gateway.session.rollback.assert_not_called()
