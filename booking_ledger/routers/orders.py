from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from booking_ledger.crud import order_crud
from booking_ledger.deps import CurrentUser, can_list_orders, require_user
from booking_ledger.schemas import (
    OrderFilters,
    OrderPage,
    OrderResponse,
    OrderStatusUpdate,
)
from booking_ledger.scoping import OrderScoper, get_order_scoper

router = APIRouter(prefix="/orders", tags=["orders"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_authorized_order(
    order_id: int,
    current_user: CurrentUser,
    scoper: OrderScoper,
    action: str,
) -> OrderResponse:
    """404 if the order does not exist, 403 if the caller may not touch it."""
    order = await order_crud.get_order(order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
    if not await scoper.authorize_order_access(current_user, order):
        logger.info(
            "User {} denied {} access to order {}", current_user.id, action, order_id
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not allowed to {action} this order",
        )
    return order


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/", response_model=OrderPage)
async def list_orders(
    filters: OrderFilters = Depends(),
    current_user: CurrentUser = Depends(can_list_orders),
    scoper: OrderScoper = Depends(get_order_scoper),
) -> OrderPage:
    items, total = await scoper.list_orders(current_user, filters)
    return OrderPage(
        items=items, total=total, page=filters.page, page_size=filters.page_size
    )


@router.get("/me", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: CurrentUser = Depends(require_user),
) -> list[OrderResponse]:
    return await order_crud.list_for_user(current_user.id)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: CurrentUser = Depends(require_user),
    scoper: OrderScoper = Depends(get_order_scoper),
) -> OrderResponse:
    return await _get_authorized_order(order_id, current_user, scoper, "view")


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    current_user: CurrentUser = Depends(require_user),
    scoper: OrderScoper = Depends(get_order_scoper),
) -> OrderResponse:
    # Any status may replace any other; there is no transition table.
    await _get_authorized_order(order_id, current_user, scoper, "update")

    updated = await order_crud.update_order_status(order_id, payload.status)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
    logger.info(
        "Order {} status set to {} by user {}",
        order_id,
        payload.status,
        current_user.id,
    )
    return updated
