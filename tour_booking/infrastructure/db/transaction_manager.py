import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.domain.errors import DomainError

logger = logging.getLogger(__name__)


class SQLAlchemyTransactionManager(TransactionManager):
    """
    Unit of work on the request session.

    The outermost start() owns the transaction and commits when the block
    exits cleanly. A start() issued while a transaction is already open joins
    it and leaves commit or rollback to the owner.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        if self._session.in_transaction():
            yield
            return

        try:
            async with self._session.begin():
                yield
        except DomainError:
            raise
        except Exception as e:
            logger.warning(
                "Transaction rolled back",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )
            raise
