from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from tour_booking.application.interfaces.transaction_manager import TransactionManager


class NoopTransactionManager(TransactionManager):
    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        yield
