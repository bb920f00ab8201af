from __future__ import annotations

from contextvars import ContextVar

from loguru import logger

from booking_ledger.crud import OrderCRUD, order_crud
from booking_ledger.schemas import BookingOrderCreate, OrderResponse

# Per request task; asyncio copies the context for every task, so a value set
# while handling one request is never seen by another.
_booking_resource_id: ContextVar[int | None] = ContextVar(
    "booking_resource_id", default=None
)

_FROM_CONTEXT = object()


def set_booking_context(resource_id: int | None) -> None:
    """Stage a resource id for the next create_booking_order() in this request."""
    _booking_resource_id.set(resource_id)


def current_booking_context() -> int | None:
    return _booking_resource_id.get()


class BookingLedger:
    def __init__(self, crud: OrderCRUD = order_crud) -> None:
        self._crud = crud

    async def create_booking_order(
        self,
        customer_id: int | None,
        payload: BookingOrderCreate,
        resource_id: int | None | object = _FROM_CONTEXT,
    ) -> OrderResponse:
        """
        Record a booking in the order history as INITIALIZED / PENDING.

        Pass `resource_id` explicitly where the caller knows it. When omitted,
        the id staged with set_booking_context() is used. Either way the staged
        context is cleared afterwards, also when persisting fails.
        """
        try:
            if resource_id is _FROM_CONTEXT:
                resource_id = _booking_resource_id.get()
            logger.info(
                "Creating booking order: customer={} amount={} title={!r} resource={}",
                customer_id,
                payload.total_amount,
                payload.booking_title,
                resource_id,
            )
            return await self._crud.create_booking_order(
                customer_id=customer_id,
                payload=payload,
                resource_id=resource_id,  # type: ignore[arg-type]
            )
        finally:
            _booking_resource_id.set(None)


_booking_ledger = BookingLedger()


def get_booking_ledger() -> BookingLedger:
    return _booking_ledger
