from fastapi import APIRouter, Depends, status, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from ..core.dependencies import get_db, get_current_user, get_current_manager
from ..models import User
from ..schemas.order import OrderCreate, OrderResponse, OrderStatusUpdate, OrderSummary
from ..schemas.refund import RefundRequestCreate, RefundRequestReject, RefundRequestResponse
from ..services.order_service import OrderService
from ..services.refund_service import RefundService

router = APIRouter()
order_service = OrderService()
refund_service = RefundService()

@router.post("/", response_model=OrderSummary, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    **Create New Order**

    Create a new order from the customer's cart. Every cart line is checked
    against the catalog, priced with the discount currently running on the
    perfume, and taken out of stock.

    **Request Body:**
    - **shipping_address**: Where the order is shipped
    - **tax_id**: Optional 10 or 11 digit tax id
    - **payment_id**: Payment reference
    - **card_number**, **card_holder**, **expiry_month**, **expiry_year**, **cvv**: Card details,
      stored only as one-way hashes (the last four digits are kept readable)

    **Returns:**
    - Order id, invoice number, totals and the priced items

    **Process:**
    1. Validates the cart has items and every item is in stock
    2. Applies active discounts
    3. Creates the order, decrements stock and clears the cart in one transaction
    4. Emails the PDF invoice in the background
    """
    return await order_service.create_order(current_user.id, order_data, db, background_tasks)

@router.get("/", response_model=List[OrderResponse])
async def get_user_orders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    **Get User Orders**

    Retrieve all orders of the current user, most recent first.
    """
    orders = await order_service.get_user_orders(current_user.id, db)
    return [order_service.to_response(order) for order in orders]

@router.get("/all", response_model=List[OrderResponse])
async def get_all_orders(
    manager: User = Depends(get_current_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    **Get All Orders (Managers Only)**

    Retrieve every order in the system, most recent first.
    """
    orders = await order_service.get_all_orders(db)
    return [order_service.to_response(order) for order in orders]

@router.get("/perfume/{perfume_id}", response_model=List[OrderResponse])
async def get_orders_of_perfume(
    perfume_id: int,
    manager: User = Depends(get_current_manager),
    db: AsyncSession = Depends(get_db)
):
    """Every order that contains the perfume (managers only)"""
    orders = await order_service.get_orders_of_perfume(perfume_id, db)
    return [order_service.to_response(order) for order in orders]

@router.get("/refund-requests", response_model=List[RefundRequestResponse])
async def get_user_refund_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Refund requests opened by the current user"""
    refund_requests = await refund_service.get_user_refund_requests(current_user.id, db)
    return [refund_service.to_response(refund_request) for refund_request in refund_requests]

@router.get("/refund-requests/all", response_model=List[RefundRequestResponse])
async def get_all_refund_requests(
    manager: User = Depends(get_current_manager),
    db: AsyncSession = Depends(get_db)
):
    """Every refund request (managers only)"""
    refund_requests = await refund_service.get_all_refund_requests(db)
    return [refund_service.to_response(refund_request) for refund_request in refund_requests]

@router.post("/refund-requests/{refund_request_id}/approve", response_model=RefundRequestResponse)
async def approve_refund_request(
    refund_request_id: int,
    manager: User = Depends(get_current_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    **Approve Refund Request (Managers Only)**

    Puts the refunded items back in stock and removes them from the order.
    An order with nothing left becomes refunded.
    """
    refund_request = await refund_service.approve_refund_request(refund_request_id, db)
    return refund_service.to_response(refund_request)

@router.post("/refund-requests/{refund_request_id}/reject", response_model=RefundRequestResponse)
async def reject_refund_request(
    refund_request_id: int,
    rejection_data: RefundRequestReject,
    manager: User = Depends(get_current_manager),
    db: AsyncSession = Depends(get_db)
):
    """Reject a pending refund request with a reason (managers only)"""
    refund_request = await refund_service.reject_refund_request(
        refund_request_id, rejection_data.rejection_reason, db
    )
    return refund_service.to_response(refund_request)

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a single order. Customers only see their own orders."""
    user_id = None if current_user.is_manager else current_user.id
    order = await order_service.get_order_by_id(order_id, user_id, db)
    return order_service.to_response(order)

@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    manager: User = Depends(get_current_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    **Update Order Status (Managers Only)**

    Moves an order one step forward: processing -> in-transit -> delivered.

    **Status Flow:**
    - processing → in-transit (a pending payment is marked completed)
    - in-transit → delivered
    - delivered, refunded and canceled orders can't be changed here
    """
    order = await order_service.update_order_status(order_id, status_data.status, db)
    return order_service.to_response(order)

@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    **Cancel Order**

    Cancel an order that hasn't shipped yet. Its items go back in stock.
    Managers can cancel any order, customers only their own.
    """
    user_id = None if current_user.is_manager else current_user.id
    order = await order_service.cancel_order(order_id, user_id, db)
    return order_service.to_response(order)

@router.post(
    "/{order_id}/refund-requests",
    response_model=RefundRequestResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_refund_request(
    order_id: int,
    refund_data: RefundRequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    **Request Refund**

    Ask for a refund of some items of a delivered, paid order within the
    refund window. The refund is priced at what was actually paid for each
    unit, after discounts.
    """
    refund_request = await refund_service.create_refund_request(order_id, current_user.id, refund_data.items, db)
    return refund_service.to_response(refund_request)
