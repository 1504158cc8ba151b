"""FastAPI routes for products and delivery slots."""

from datetime import date

from fastapi import APIRouter
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    AdjustStockRequest,
    ChangeAvailabilityRequest,
    ChangePriceRequest,
    CleanupResponse,
    CreateSlotRequest,
    ProductIdResponse,
    ProductResponse,
    RegisterProductRequest,
    SlotIdResponse,
    SlotListResponse,
    SlotResponse,
    StatusResponse,
    UpdateSlotRequest,
)
from marketplace.product.management import (
    AdjustProductStock,
    ChangeProductAvailability,
    ChangeProductPrice,
    RegisterProduct,
)
from marketplace.product.product import Product
from marketplace.slot.management import CreateDeliverySlot, SetSlotAvailability, UpdateSlotCapacity
from marketplace.slot.slot import DeliverySlot
from marketplace.sweeper.sweeper import nudge_sweep

# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


def product_response(product) -> ProductResponse:
    return ProductResponse(
        product_id=str(product.id),
        producer_id=str(product.producer_id),
        name=product.name,
        unit=product.unit,
        price=product.price,
        product_type=product.product_type,
        available=product.available,
        min_order_quantity=product.minimum_quantity,
        accept_deferred=bool(product.accept_deferred),
        stock=product.stock,
    )


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        producer_id=body.producer_id,
        name=body.name,
        unit=body.unit,
        price=body.price,
        product_type=body.product_type,
        min_order_quantity=body.min_order_quantity,
        accept_deferred=body.accept_deferred,
        stock=body.stock,
    )
    product_id = current_domain.process(command, asynchronous=False)
    if not body.available:
        current_domain.process(ChangeProductAvailability(product_id=product_id, available=False), asynchronous=False)
    return ProductIdResponse(product_id=product_id)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    return product_response(current_domain.repository_for(Product).get(product_id))


@product_router.put("/{product_id}/price", response_model=StatusResponse)
async def change_price(product_id: str, body: ChangePriceRequest) -> StatusResponse:
    current_domain.process(ChangeProductPrice(product_id=product_id, price=body.price), asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/availability", response_model=StatusResponse)
async def change_availability(product_id: str, body: ChangeAvailabilityRequest) -> StatusResponse:
    current_domain.process(
        ChangeProductAvailability(product_id=product_id, available=body.available),
        asynchronous=False,
    )
    return StatusResponse()


@product_router.put("/{product_id}/stock", response_model=StatusResponse)
async def adjust_stock(product_id: str, body: AdjustStockRequest) -> StatusResponse:
    current_domain.process(AdjustProductStock(product_id=product_id, stock=body.stock), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Delivery Slot Router
# ---------------------------------------------------------------------------
slot_router = APIRouter(prefix="/delivery-slots", tags=["delivery-slots"])


def slot_response(slot, today=None) -> SlotResponse:
    today = today or date.today()
    return SlotResponse(
        slot_id=str(slot.id),
        product_id=str(slot.product_id),
        date=slot.date,
        max_capacity=slot.max_capacity,
        reserved=slot.reserved,
        available_capacity=slot.available_capacity,
        occupancy_percentage=round(slot.occupancy_rate * 100, 1),
        is_almost_full=slot.is_almost_full,
        is_fully_booked=slot.is_fully_booked,
        is_available=bool(slot.is_available),
        is_past=slot.is_expired(today),
        can_book=slot.can_book(today),
    )


@slot_router.post("", status_code=201, response_model=SlotIdResponse)
async def create_slot(body: CreateSlotRequest) -> SlotIdResponse:
    command = CreateDeliverySlot(product_id=body.product_id, date=body.date, max_capacity=body.max_capacity)
    slot_id = current_domain.process(command, asynchronous=False)
    return SlotIdResponse(slot_id=slot_id)


@slot_router.get("", response_model=SlotListResponse)
async def list_slots(product_id: str, include_past: bool = False) -> SlotListResponse:
    """Slot overview for a product. Stale bookings are swept first so the figures are current."""
    nudge_sweep()
    today = date.today()
    repo = current_domain.repository_for(DeliverySlot)
    slots = repo.for_product(product_id) if include_past else repo.available_for_product(product_id, today)
    return SlotListResponse(slots=[slot_response(slot, today) for slot in slots])


@slot_router.patch("/{slot_id}", response_model=SlotResponse)
async def update_slot(slot_id: str, body: UpdateSlotRequest) -> SlotResponse:
    if body.max_capacity is not None:
        current_domain.process(UpdateSlotCapacity(slot_id=slot_id, max_capacity=body.max_capacity), asynchronous=False)
    if body.is_available is not None:
        current_domain.process(
            SetSlotAvailability(slot_id=slot_id, is_available=body.is_available),
            asynchronous=False,
        )
    return slot_response(current_domain.repository_for(DeliverySlot).get(slot_id))


@slot_router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_slots() -> CleanupResponse:
    return CleanupResponse(released=nudge_sweep())
