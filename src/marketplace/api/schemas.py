"""Pydantic request/response schemas for the marketplace API.

These are external contracts, kept separate from the Protean commands they
are translated into.
"""

import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CountResponse(BaseModel):
    count: int


class BreakdownSchema(BaseModel):
    subtotal: float
    delivery_fee: float
    commission: float
    producer_net: float
    grand_total: float
    commission_rate: float


class AddressSchema(BaseModel):
    full_name: str | None = None
    company: str | None = None
    street: str | None = None
    postal_code: str | None = None
    city: str | None = None
    phone: str | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    producer_id: str
    name: str = Field(..., min_length=1, max_length=200)
    unit: str = "kg"
    price: float = Field(..., gt=0)
    product_type: str = Field(..., examples=["FRESH"])
    available: bool = True
    min_order_quantity: float | None = Field(default=None, gt=0)
    accept_deferred: bool = False
    stock: float | None = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "producer_id": "prod-001",
                    "name": "Oyster mushrooms",
                    "unit": "kg",
                    "price": 18.5,
                    "product_type": "FRESH",
                    "min_order_quantity": 0.5,
                    "accept_deferred": True,
                    "stock": 120.0,
                }
            ]
        }
    }


class ChangePriceRequest(BaseModel):
    price: float = Field(..., gt=0)


class ChangeAvailabilityRequest(BaseModel):
    available: bool


class AdjustStockRequest(BaseModel):
    stock: float = Field(..., ge=0)


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    product_id: str
    producer_id: str
    name: str
    unit: str
    price: float
    product_type: str
    available: bool
    min_order_quantity: float
    accept_deferred: bool
    stock: float | None = None


# ---------------------------------------------------------------------------
# Delivery slots
# ---------------------------------------------------------------------------
class CreateSlotRequest(BaseModel):
    product_id: str
    date: datetime.date
    max_capacity: float = Field(..., gt=0)


class UpdateSlotRequest(BaseModel):
    max_capacity: float | None = Field(default=None, gt=0)
    is_available: bool | None = None


class SlotIdResponse(BaseModel):
    slot_id: str


class SlotResponse(BaseModel):
    slot_id: str
    product_id: str
    date: datetime.date
    max_capacity: float
    reserved: float
    available_capacity: float
    occupancy_percentage: float
    is_almost_full: bool
    is_fully_booked: bool
    is_available: bool
    is_past: bool
    can_book: bool


class SlotListResponse(BaseModel):
    slots: list[SlotResponse]


class CleanupResponse(BaseModel):
    released: int


# ---------------------------------------------------------------------------
# Carts and bookings
# ---------------------------------------------------------------------------
class OpenCartRequest(BaseModel):
    user_id: str

    model_config = {"json_schema_extra": {"examples": [{"user_id": "user-001"}]}}


class CartIdResponse(BaseModel):
    cart_id: str


class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: float = Field(..., gt=0)


class ItemIdResponse(BaseModel):
    item_id: str


class AddBookingRequest(BaseModel):
    cart_id: str
    slot_id: str
    quantity: float = Field(..., gt=0)
    price: float | None = Field(default=None, ge=0)


class BookingIdResponse(BaseModel):
    booking_id: str


class CartItemSchema(BaseModel):
    item_id: str
    product_id: str
    producer_id: str
    product_name: str | None = None
    quantity: float
    unit_price: float


class BookingSchema(BaseModel):
    booking_id: str
    slot_id: str
    product_id: str
    producer_id: str
    product_name: str | None = None
    delivery_date: datetime.date
    quantity: float
    unit_price: float
    status: str
    expires_at: str | None = None


class CartResponse(BaseModel):
    cart_id: str
    user_id: str
    status: str
    items: list[CartItemSchema]
    bookings: list[BookingSchema]
    total: float


class CheckoutSummaryResponse(BaseModel):
    cart_id: str
    status: str
    currency: str
    item_count: int
    booking_count: int
    pickup: BreakdownSchema
    delivery: BreakdownSchema
    payment_methods: list[str]


class CheckoutRequest(BaseModel):
    delivery_type: str = Field(..., examples=["delivery"])
    delivery_info: AddressSchema | None = None
    payment_method: str = Field(..., examples=["invoice"])
    payment_status: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "delivery_type": "delivery",
                    "delivery_info": {
                        "full_name": "Anna Muster",
                        "street": "Bahnhofstrasse 1",
                        "postal_code": "8001",
                        "city": "Zürich",
                        "phone": "+41 44 123 45 67",
                    },
                    "payment_method": "invoice",
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    order_id: str
    breakdown: BreakdownSchema


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class ChangeStatusRequest(BaseModel):
    status: str = Field(..., examples=["Confirmed"])
    reason: str | None = Field(default=None, max_length=500)


class OrderSummaryResponse(BaseModel):
    order_id: str
    user_id: str
    status: str
    item_count: int
    booking_count: int
    grand_total: float
    currency: str
    payment_method: str | None = None
    payment_status: str | None = None
    placed_at: str | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderSummaryResponse]


class DeliveryInfoSchema(AddressSchema):
    type: str


class PaymentSchema(BaseModel):
    method: str | None = None
    status: str | None = None
    reference: str | None = None
    due_date: datetime.date | None = None
    invoice_id: str | None = None
    invoice_number: str | None = None


class OrderDetailResponse(BaseModel):
    order_id: str
    user_id: str
    status: str
    items: list[dict]
    bookings: list[dict]
    delivery: DeliveryInfoSchema
    payment: PaymentSchema
    breakdown: BreakdownSchema
    currency: str
    cancellation_reason: str | None = None
    placed_at: str | None = None
    updated_at: str | None = None


# ---------------------------------------------------------------------------
# Invoices and revenue
# ---------------------------------------------------------------------------
class InvoiceResponse(BaseModel):
    invoice_id: str
    order_id: str
    user_id: str
    invoice_number: str
    amount: float
    status: str
    due_date: datetime.date
    paid_at: str | None = None


class RevenueBucket(BaseModel):
    gross: float
    commission: float
    net: float
    order_count: int


class ProducerRevenueResponse(BaseModel):
    producer_id: str
    currency: str
    commission_rate: float
    pending: RevenueBucket
    available: RevenueBucket


# ---------------------------------------------------------------------------
# Producer wallet
# ---------------------------------------------------------------------------
class WithdrawalRequest(BaseModel):
    amount: float = Field(..., gt=0, examples=[250.0])
    reason: str | None = Field(default=None, max_length=200)


class SettleWithdrawalRequest(BaseModel):
    reference: str | None = Field(default=None, max_length=100)
    reason: str | None = Field(default=None, max_length=200)


class WithdrawalIdResponse(BaseModel):
    withdrawal_id: str


class WithdrawalSchema(BaseModel):
    withdrawal_id: str
    amount: float
    status: str
    reason: str | None = None
    reference: str | None = None
    requested_at: str | None = None
    processed_at: str | None = None


class WalletResponse(BaseModel):
    producer_id: str
    currency: str
    available_revenue: float
    withdrawn: float
    balance: float
    withdrawals: list[WithdrawalSchema]
