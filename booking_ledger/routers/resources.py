from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from booking_ledger import settings
from booking_ledger.crud import resource_crud
from booking_ledger.deps import (
    CurrentUser,
    NotificationsClient,
    can_book_resource,
    get_notifications_client,
)
from booking_ledger.ledger import BookingLedger, get_booking_ledger
from booking_ledger.models import Resource
from booking_ledger.schemas import (
    BookBatchRequest,
    BookingOrderCreate,
    BookingSlot,
    BookRequest,
    OrderResponse,
)

router = APIRouter(prefix="/resources", tags=["resources"])


def _slot_label(slot: BookingSlot) -> str:
    return f"{slot.start_time} - {slot.end_time} | Unit {slot.unit}"


def _price(resource: Resource, slot_count: int) -> Decimal:
    per_slot = resource.price_per_slot if resource.price_per_slot is not None else 0
    return (Decimal(per_slot) * slot_count).quantize(Decimal("0.01"))


async def _book(
    resource_id: int,
    booking_date: date,
    slots: list[BookingSlot],
    current_user: CurrentUser,
    ledger: BookingLedger,
    notifications: NotificationsClient,
) -> OrderResponse:
    resource = await resource_crud.get_resource(resource_id)
    if resource is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found"
        )

    total = _price(resource, len(slots))
    details = "\n".join(
        [f"Date: {booking_date.isoformat()}"] + [_slot_label(s) for s in slots]
    )
    try:
        payload = BookingOrderCreate(
            total_amount=total,
            booking_title=f"Booking: {resource.name}",
            booking_details=details,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid booking: {e.error_count()} validation error(s)",
        ) from e

    order = await ledger.create_booking_order(
        customer_id=current_user.id, payload=payload, resource_id=resource.id
    )

    await notifications.send_email(
        recipient=current_user.email,
        subject=f"Booking Confirmation - {resource.name}",
        template="booking-confirmation",
        context={
            "customerName": current_user.name or "Customer",
            "resourceName": resource.name,
            "resourceLocation": resource.location or "",
            "date": booking_date.isoformat(),
            "timeRange": _slot_label(slots[0]) if len(slots) == 1 else "Multiple slots",
            "totalSlots": len(slots),
            "totalAmount": str(total),
            "paymentLink": f"{settings.PAYMENT_LINK_BASE}{order.id}&amount={total}",
        },
    )
    return order


@router.post(
    "/{resource_id}/book",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book(
    resource_id: int,
    payload: BookRequest,
    current_user: CurrentUser = Depends(can_book_resource),
    ledger: BookingLedger = Depends(get_booking_ledger),
    notifications: NotificationsClient = Depends(get_notifications_client),
) -> OrderResponse:
    slot = BookingSlot(
        start_time=payload.start_time, end_time=payload.end_time, unit=payload.unit
    )
    return await _book(
        resource_id, payload.date, [slot], current_user, ledger, notifications
    )


@router.post(
    "/{resource_id}/book-batch",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_batch(
    resource_id: int,
    payload: BookBatchRequest,
    current_user: CurrentUser = Depends(can_book_resource),
    ledger: BookingLedger = Depends(get_booking_ledger),
    notifications: NotificationsClient = Depends(get_notifications_client),
) -> OrderResponse:
    return await _book(
        resource_id, payload.date, payload.slots, current_user, ledger, notifications
    )
