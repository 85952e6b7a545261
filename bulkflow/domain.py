from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, confloat, field_validator

from .statuses import SourceKind, status_label


class Actor(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    NONE = "none"


class LifecycleAction(str, Enum):
    SEND_QUOTE = "send_quote"
    ACCEPT_COUNTER = "accept_counter"
    REJECT_COUNTER = "reject_counter"
    ACCEPT_QUOTE_REQUEST = "accept_quote_request"
    REJECT_QUOTE_REQUEST = "reject_quote_request"
    UPDATE_ORDER_STATUS = "update_order_status"


class StageState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"
    REJECTED = "rejected"


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _optional_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _records(value: Any) -> List[Any]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


class _RawRecord(BaseModel):
    """Backend payloads are loosely typed; every field has a safe default."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class RawStatusEvent(_RawRecord):
    status: str = ""
    timestamp: str = ""
    note: Optional[str] = None

    @field_validator("status", "timestamp", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any):
        return _text(value)

    @field_validator("note", mode="before")
    @classmethod
    def _coerce_note(cls, value: Any):
        return _optional_text(value)


class RawOrderProduct(_RawRecord):
    product_id: str = Field("", alias="productId")
    quantity: float = 0
    price: float = 0

    @field_validator("product_id", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any):
        return _text(value)

    @field_validator("quantity", "price", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any):
        return _number(value)


class RawQuotationProduct(_RawRecord):
    product_id: str = Field("", alias="productId")
    quantity: float = 0
    target_price: float = Field(0, alias="targetPrice")
    quoted_price: Optional[float] = Field(None, alias="quotedPrice")

    @field_validator("product_id", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any):
        return _text(value)

    @field_validator("quantity", "target_price", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any):
        return _number(value)

    @field_validator("quoted_price", mode="before")
    @classmethod
    def _coerce_quoted(cls, value: Any):
        return _optional_number(value)


class RawOrder(_RawRecord):
    id: str = Field("", alias="_id")
    order_id: Optional[str] = Field(None, alias="orderId")
    customer_id: Optional[str] = Field(None, alias="customerId")
    products: List[RawOrderProduct] = Field(default_factory=list)
    total_amount: float = Field(0, alias="totalAmount")
    currency: Optional[str] = None
    status: str = ""
    shipping_address: Optional[Dict[str, Any]] = Field(None, alias="shippingAddress")
    notes: Optional[str] = None
    shipping_cost: Optional[float] = Field(None, alias="shippingCost")
    discount: Optional[float] = None
    created_at: str = Field("", alias="createdAt")
    updated_at: str = Field("", alias="updatedAt")
    status_history: List[RawStatusEvent] = Field(default_factory=list, alias="statusHistory")

    @field_validator("id", "status", "created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any):
        return _text(value)

    @field_validator("order_id", "customer_id", "currency", "notes", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any):
        return _optional_text(value)

    @field_validator("total_amount", mode="before")
    @classmethod
    def _coerce_total(cls, value: Any):
        return _number(value)

    @field_validator("shipping_cost", "discount", mode="before")
    @classmethod
    def _coerce_optional(cls, value: Any):
        return _optional_number(value)

    @field_validator("products", "status_history", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any):
        return _records(value)

    @field_validator("shipping_address", mode="before")
    @classmethod
    def _address(cls, value: Any) -> Optional[Dict[str, Any]]:
        return value if isinstance(value, dict) else None


class RawQuotation(_RawRecord):
    id: str = Field("", alias="_id")
    quotation_id: Optional[str] = Field(None, alias="quotationId")
    customer_id: Optional[str] = Field(None, alias="customerId")
    products: List[RawQuotationProduct] = Field(default_factory=list)
    total_amount: Optional[float] = Field(None, alias="totalAmount")
    quoted_total: Optional[float] = Field(None, alias="quotedTotal")
    currency: Optional[str] = None
    status: str = ""
    shipping_address: Optional[Dict[str, Any]] = Field(None, alias="shippingAddress")
    notes: Optional[str] = None
    created_at: str = Field("", alias="createdAt")
    updated_at: str = Field("", alias="updatedAt")
    status_history: List[RawStatusEvent] = Field(default_factory=list, alias="statusHistory")

    @field_validator("id", "status", "created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any):
        return _text(value)

    @field_validator("quotation_id", "customer_id", "currency", "notes", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any):
        return _optional_text(value)

    @field_validator("total_amount", "quoted_total", mode="before")
    @classmethod
    def _coerce_optional(cls, value: Any):
        return _optional_number(value)

    @field_validator("products", "status_history", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any):
        return _records(value)

    @field_validator("shipping_address", mode="before")
    @classmethod
    def _address(cls, value: Any) -> Optional[Dict[str, Any]]:
        return value if isinstance(value, dict) else None


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    quantity: float
    unit_price: float
    target_price: Optional[float] = None
    quoted_price: Optional[float] = None

    @computed_field
    @property
    def effective_price(self) -> float:
        if self.quoted_price is not None:
            return self.quoted_price
        if self.target_price is not None:
            return self.target_price
        return self.unit_price

    @computed_field
    @property
    def line_total(self) -> float:
        return self.quantity * self.effective_price


class TimelineEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    timestamp: datetime
    note: Optional[str] = None


class UnifiedOrderEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_number: str
    source_kind: SourceKind
    backend_number: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: str
    line_items: List[LineItem]
    total_amount: float
    quoted_total: Optional[float] = None
    currency: str
    status: str
    notes: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    shipping_cost: float = 0
    discount: float = 0
    created_at: datetime
    updated_at: datetime
    timeline: List[TimelineEntry] = Field(default_factory=list)

    @computed_field
    @property
    def is_quotation(self) -> bool:
        return self.source_kind == SourceKind.QUOTATION

    @computed_field
    @property
    def status_label(self) -> str:
        return status_label(self.status)

    def matches(self, ref: str) -> bool:
        return ref in (self.id, self.display_number)

    def submission_ref(self) -> str:
        """The reference the backend knows this record by: its own number, else the id."""
        return self.backend_number or self.id


class QuotedProduct(BaseModel):
    """One product line as the quotation update endpoint expects it."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId")
    quantity: float
    target_price: float = Field(alias="targetPrice")
    quoted_price: float = Field(alias="quotedPrice")


class TransitionRequest(BaseModel):
    action: LifecycleAction
    source_kind: SourceKind
    target_id: str
    backend_status: Optional[str] = None
    products: Optional[List[QuotedProduct]] = None
    notes: Optional[str] = None

    def quotation_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if self.backend_status is not None:
            fields["status"] = self.backend_status
        if self.products is not None:
            fields["products"] = [product.model_dump(by_alias=True) for product in self.products]
        if self.notes is not None:
            fields["notes"] = self.notes
        return fields


class OrderCreateLine(BaseModel):
    product_id: str
    quantity: confloat(gt=0)
    price: confloat(ge=0)


class OrderCreate(BaseModel):
    customer_id: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    products: List[OrderCreateLine] = Field(min_length=1)
    notes: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None


class SendQuoteInput(BaseModel):
    prices: Dict[str, confloat(ge=0)] = Field(default_factory=dict)
    notes: Optional[str] = None


class RejectInput(BaseModel):
    reason: Optional[str] = None


class StatusUpdateInput(BaseModel):
    status: str = Field(min_length=1)
    note: Optional[str] = None


class DetailsUpdateInput(BaseModel):
    notes: Optional[str] = None
    shipping_cost: Optional[confloat(ge=0)] = None
    discount: Optional[confloat(ge=0)] = None


class EntityLookup(BaseModel):
    ref: str


class EntityQuery(BaseModel):
    status: Optional[str] = None
    kind: Optional[SourceKind] = None


class ActionsView(BaseModel):
    id: str
    status: str
    turn: Actor
    actions: List[LifecycleAction]


class ProgressStage(BaseModel):
    stage: str
    label: str
    index: int
    state: StageState
    reached_at: Optional[datetime] = None


class ProgressProjection(BaseModel):
    status: str
    rejected: bool
    current_index: int
    stages: List[ProgressStage]


class FeedStats(BaseModel):
    total: int
    pending: int
    processing: int
    shipped: int
    completed: int
    total_value: float
    generated_at: datetime


class HealthStatus(BaseModel):
    status: str
    transport: str
    time: datetime
