"""FastAPI routes for carts, slot bookings and checkout."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    AddBookingRequest,
    AddCartItemRequest,
    BookingIdResponse,
    BookingSchema,
    CartIdResponse,
    CartItemSchema,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    CheckoutSummaryResponse,
    CleanupResponse,
    ItemIdResponse,
    OpenCartRequest,
    StatusResponse,
)
from marketplace.cart.bookings import AddBooking, CancelBooking
from marketplace.cart.cart import ShoppingCart
from marketplace.cart.items import AddCartItem, RemoveCartItem
from marketplace.cart.management import OpenCart
from marketplace.checkout.checkout import CheckoutCart, checkout_summary
from marketplace.checkout.pricing import booking_unit_price
from marketplace.sweeper.sweeper import nudge_sweep

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


def cart_response(cart) -> CartResponse:
    return CartResponse(
        cart_id=str(cart.id),
        user_id=str(cart.user_id),
        status=cart.status,
        items=[
            CartItemSchema(
                item_id=str(item.id),
                product_id=str(item.product_id),
                producer_id=str(item.producer_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in cart.items
        ],
        bookings=[
            BookingSchema(
                booking_id=str(booking.id),
                slot_id=str(booking.slot_id),
                product_id=str(booking.product_id),
                producer_id=str(booking.producer_id),
                product_name=booking.product_name,
                delivery_date=booking.delivery_date,
                quantity=booking.quantity,
                unit_price=float(booking_unit_price(booking)),
                status=booking.status,
                expires_at=booking.expires_at.isoformat() if booking.expires_at else None,
            )
            for booking in cart.bookings
        ],
        total=cart.total,
    )


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def open_cart(body: OpenCartRequest) -> CartIdResponse:
    cart_id = current_domain.process(OpenCart(user_id=body.user_id), asynchronous=False)
    return CartIdResponse(cart_id=cart_id)


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def get_cart(cart_id: str) -> CartResponse:
    return cart_response(current_domain.repository_for(ShoppingCart).get(cart_id))


@cart_router.get("/{cart_id}/checkout-summary", response_model=CheckoutSummaryResponse)
async def get_checkout_summary(cart_id: str) -> CheckoutSummaryResponse:
    nudge_sweep(cart_id=cart_id)
    cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    return CheckoutSummaryResponse(**checkout_summary(cart))


@cart_router.post("/{cart_id}/items", status_code=201, response_model=ItemIdResponse)
async def add_cart_item(cart_id: str, body: AddCartItemRequest) -> ItemIdResponse:
    command = AddCartItem(cart_id=cart_id, product_id=body.product_id, quantity=body.quantity)
    item_id = current_domain.process(command, asynchronous=False)
    return ItemIdResponse(item_id=item_id)


@cart_router.delete("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, item_id: str) -> StatusResponse:
    current_domain.process(RemoveCartItem(cart_id=cart_id, item_id=item_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/checkout", status_code=201, response_model=CheckoutResponse)
async def checkout(cart_id: str, body: CheckoutRequest) -> CheckoutResponse:
    command = CheckoutCart(
        cart_id=cart_id,
        delivery_type=body.delivery_type,
        delivery_info=json.dumps(body.delivery_info.model_dump()) if body.delivery_info else None,
        payment_method=body.payment_method,
        payment_status=body.payment_status,
    )
    result = current_domain.process(command, asynchronous=False)
    return CheckoutResponse(**result)


# ---------------------------------------------------------------------------
# Booking Router
# ---------------------------------------------------------------------------
booking_router = APIRouter(prefix="/bookings", tags=["bookings"])


@booking_router.post("", status_code=201, response_model=BookingIdResponse)
async def add_booking(body: AddBookingRequest) -> BookingIdResponse:
    command = AddBooking(cart_id=body.cart_id, slot_id=body.slot_id, quantity=body.quantity, price=body.price)
    booking_id = current_domain.process(command, asynchronous=False)
    return BookingIdResponse(booking_id=booking_id)


@booking_router.delete("/{booking_id}", response_model=StatusResponse)
async def cancel_booking(booking_id: str, cart_id: str) -> StatusResponse:
    current_domain.process(CancelBooking(cart_id=cart_id, booking_id=booking_id), asynchronous=False)
    return StatusResponse()


@booking_router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_bookings() -> CleanupResponse:
    return CleanupResponse(released=nudge_sweep())
