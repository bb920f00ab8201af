from __future__ import annotations

from collections.abc import Iterable

from booking_ledger.models import Order, OrderStatus, PaymentStatus, Resource, User
from booking_ledger.schemas import BookingOrderCreate, OrderResponse


def _to_response(orders: Iterable[Order]) -> list[OrderResponse]:
    return [OrderResponse.model_validate(o, from_attributes=True) for o in orders]


class OrderCRUD:
    async def get_order(self, order_id: int) -> OrderResponse | None:
        inst = await Order.get_or_none(id=order_id)
        if not inst:
            return None
        return OrderResponse.model_validate(inst, from_attributes=True)

    async def list_page(
        self,
        page: int,
        page_size: int,
        status: OrderStatus | None = None,
        name_keyword: str | None = None,
    ) -> tuple[list[OrderResponse], int]:
        """Unscoped, DB-paginated listing ordered by id descending."""
        qs = Order.all()
        if status is not None:
            qs = qs.filter(order_status=status)
        if name_keyword:
            qs = qs.filter(booking_title__icontains=name_keyword)

        total = await qs.count()
        offset = page * page_size
        if offset >= total:
            return [], total
        orders = await qs.order_by("-id").offset(offset).limit(page_size)
        return _to_response(orders), total

    async def list_by_resource_ids(
        self,
        resource_ids: Iterable[int],
        status: OrderStatus | None = None,
    ) -> list[OrderResponse]:
        qs = Order.filter(resource_id__in=list(resource_ids))
        if status is not None:
            qs = qs.filter(order_status=status)
        return _to_response(await qs.order_by("-id"))

    async def list_legacy_bookings(
        self, status: OrderStatus | None = None
    ) -> list[OrderResponse]:
        """Booking orders that predate resource linkage (resource_id is null)."""
        qs = Order.filter(resource_id__isnull=True, is_booking=True)
        if status is not None:
            qs = qs.filter(order_status=status)
        return _to_response(await qs.order_by("-id"))

    async def list_for_user(self, user_id: int) -> list[OrderResponse]:
        orders = await Order.filter(user_id=user_id).order_by("-order_date", "-id")
        return _to_response(orders)

    async def update_order_status(
        self, order_id: int, status: OrderStatus
    ) -> OrderResponse | None:
        inst = await Order.get_or_none(id=order_id)
        if not inst:
            return None
        inst.order_status = status  # type: ignore
        await inst.save(update_fields=["order_status"])
        return OrderResponse.model_validate(inst, from_attributes=True)

    async def create_booking_order(
        self,
        customer_id: int | None,
        payload: BookingOrderCreate,
        resource_id: int | None,
    ) -> OrderResponse:
        inst = await Order.create(
            user_id=customer_id,
            total_amount=payload.total_amount,
            order_status=OrderStatus.INITIALIZED,
            payment_status=PaymentStatus.PENDING,
            is_booking=True,
            booking_title=payload.booking_title,
            booking_details=payload.booking_details,
            resource_id=resource_id,
        )
        return OrderResponse.model_validate(inst, from_attributes=True)


class UserCRUD:
    async def get_by_email(self, email: str) -> User | None:
        return await User.get_or_none(email=email)


class ResourceCRUD:
    async def get_resource(self, resource_id: int) -> Resource | None:
        return await Resource.get_or_none(id=resource_id)


order_crud = OrderCRUD()
user_crud = UserCRUD()
resource_crud = ResourceCRUD()
