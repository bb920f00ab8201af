"""
Order visibility scoping.

Decides which orders a principal may see or mutate:

  1. orders:all (admins)         -> every order
  2. orders:managed, resource_id -> iff resource_id is a resource they manage
  3. orders:managed, legacy      -> iff the booking title names a resource they
                                    manage (LegacyTitleMatcher)
  4. anything else               -> denied

Manager listings merge two sources (resource-linked orders and legacy booking
orders), deduplicate by id, sort by id descending, filter by name, and only
then paginate in memory. Both sources are loaded unpaged.
TODO: replace the merge with one indexed query once legacy rows are backfilled
with a resource_id.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from loguru import logger

from booking_ledger.crud import OrderCRUD, order_crud
from booking_ledger.ownership import ResourceOwnershipIndex, ownership_index
from booking_ledger.roles import Capability
from booking_ledger.schemas import OrderFilters, OrderResponse

if TYPE_CHECKING:
    from booking_ledger.deps import CurrentUser


class LegacyTitleMatcher:
    """
    Compatibility shim for booking orders created before orders carried a
    resource_id. The owning resource is inferred by case-insensitive substring
    match of a resource name inside the booking title, which is ambiguous when
    names share words. Only ever consulted for orders with resource_id = None;
    delete once legacy rows are backfilled.
    """

    def __init__(self, resource_names: Iterable[str]) -> None:
        self._names = tuple(
            n.lower() for n in resource_names if n is not None and n.strip()
        )

    def __bool__(self) -> bool:
        return bool(self._names)

    def matches(self, booking_title: str | None) -> bool:
        if not booking_title or not self._names:
            return False
        title = booking_title.lower()
        return any(name in title for name in self._names)


def _is_legacy_booking(order: OrderResponse) -> bool:
    return order.resource_id is None and order.is_booking


def merge_orders(*sources: Iterable[OrderResponse]) -> list[OrderResponse]:
    """Union of the sources, unique by id, newest (highest id) first."""
    unique: dict[int, OrderResponse] = {}
    for source in sources:
        for order in source:
            unique.setdefault(order.id, order)
    return sorted(unique.values(), key=lambda o: o.id, reverse=True)


def filter_by_name(
    orders: list[OrderResponse], keyword: str | None
) -> list[OrderResponse]:
    if not keyword:
        return orders
    kw = keyword.lower()
    return [o for o in orders if o.booking_title and kw in o.booking_title.lower()]


def paginate(items: list, page: int, page_size: int) -> list:
    start = min(page * page_size, len(items))
    end = min(start + page_size, len(items))
    return items[start:end]


class OrderScoper:
    def __init__(
        self,
        crud: OrderCRUD = order_crud,
        ownership: ResourceOwnershipIndex = ownership_index,
    ) -> None:
        self._crud = crud
        self._ownership = ownership

    async def authorize_order_access(
        self, principal: CurrentUser, order: OrderResponse
    ) -> bool:
        caps = principal.capabilities
        if Capability.ORDERS_ALL in caps:
            return True
        if Capability.ORDERS_MANAGED not in caps:
            return False

        if order.resource_id is not None:
            managed_ids = await self._ownership.managed_resource_ids(principal.id)
            return order.resource_id in managed_ids

        if _is_legacy_booking(order) and order.booking_title is not None:
            names = await self._ownership.managed_resource_names(principal.id)
            return LegacyTitleMatcher(names).matches(order.booking_title)

        return False

    async def list_orders(
        self, principal: CurrentUser, filters: OrderFilters
    ) -> tuple[list[OrderResponse], int]:
        caps = principal.capabilities
        if Capability.ORDERS_ALL in caps:
            return await self._crud.list_page(
                page=filters.page,
                page_size=filters.page_size,
                status=filters.status,
                name_keyword=filters.name_keyword,
            )
        if Capability.ORDERS_MANAGED not in caps:
            return [], 0
        return await self._list_managed(principal, filters)

    async def _list_managed(
        self, principal: CurrentUser, filters: OrderFilters
    ) -> tuple[list[OrderResponse], int]:
        managed_ids = await self._ownership.managed_resource_ids(principal.id)
        matcher = LegacyTitleMatcher(
            await self._ownership.managed_resource_names(principal.id)
        )
        if not managed_ids and not matcher:
            logger.debug("Principal {} manages no resources", principal.id)
            return [], 0

        linked: list[OrderResponse] = []
        if managed_ids:
            linked = await self._crud.list_by_resource_ids(
                managed_ids, status=filters.status
            )

        legacy: list[OrderResponse] = []
        if matcher:
            legacy = [
                o
                for o in await self._crud.list_legacy_bookings(status=filters.status)
                if matcher.matches(o.booking_title)
            ]

        merged = filter_by_name(merge_orders(linked, legacy), filters.name_keyword)
        return paginate(merged, filters.page, filters.page_size), len(merged)


_order_scoper = OrderScoper()


def get_order_scoper() -> OrderScoper:
    return _order_scoper
