"""
Schemas Pydantic para folios, consumos y checkout
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from config import DEFAULT_CURRENCY
from models.folio import ItemSource, PaymentMethod, PaymentStatus, PAYMENT_SOURCE_FOLIO


# ========================================================================
# ENUMS
# ========================================================================

class DateClassification(str, Enum):
    ON_SCHEDULE = "on_schedule"
    EARLY_CHECKOUT = "early_checkout"
    LATE_CHECKOUT = "late_checkout"


# ========================================================================
# REQUESTS
# ========================================================================

class FolioItemCreate(BaseModel):
    """Request para POST /folios/{id}/items"""
    source: ItemSource = ItemSource.MANUAL
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., description="Negativo = crédito/descuento")
    tax_code: Optional[str] = Field(None, max_length=20)


class DiscountCreate(BaseModel):
    """Request para POST /folios/{id}/descuentos"""
    amount: Decimal = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=200)


class FolioPaymentRequest(BaseModel):
    """Request para POST /folios/{id}/pagos"""
    method: PaymentMethod
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)
    reference: Optional[str] = Field(None, max_length=120)
    status: PaymentStatus = PaymentStatus.COMPLETED
    notes: Optional[str] = None


class PaymentCreate(FolioPaymentRequest):
    """Pago con alcance genérico (source, source_id)"""
    source: str = PAYMENT_SOURCE_FOLIO
    source_id: int
    created_by: Optional[str] = None


class MoveItemRequest(BaseModel):
    to_folio_id: int


class ConsumptionLine(BaseModel):
    """Un renglón de consumo (minibar, room service, ...)"""
    product_id: int
    product_name: str = Field(..., min_length=1, max_length=150)
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=200)

    @validator("product_name")
    def _strip_product_name(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("product_name vacío")
        return value


class ConsumptionBatchRequest(BaseModel):
    """Request para POST /espacios/{id}/consumos"""
    lines: List[ConsumptionLine] = Field(..., min_length=1)
    fecha: Optional[date] = Field(None, description="Fecha operativa; hoy por defecto")


# ========================================================================
# RESPONSES
# ========================================================================

class FolioItemResponse(BaseModel):
    id: int
    folio_id: int
    source: str
    description: str
    amount: Decimal
    tax_code: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: int
    source: str
    source_id: int
    method: str
    amount: Decimal
    currency: str
    reference: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FolioResponse(BaseModel):
    id: int
    reservation_id: Optional[int] = None
    balance: Decimal
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[FolioItemResponse] = []
    payments: List[PaymentResponse] = []

    class Config:
        from_attributes = True


class FolioSummaryResponse(BaseModel):
    folio_id: int
    reservation_id: Optional[int] = None
    status: str
    subtotal: Decimal
    payments: Decimal
    balance: Decimal
    item_count: int
    payment_count: int


class BalanceResponse(BaseModel):
    folio_id: int
    balance: Decimal


class MoveItemResponse(BaseModel):
    item_id: int
    from_folio_id: int
    to_folio_id: int
    from_balance: Decimal
    to_balance: Decimal


class ActiveOccupancyResponse(BaseModel):
    space_id: int
    reservation_id: int
    folio_id: Optional[int] = None
    checkin: date
    checkout: date
    status: str

    class Config:
        from_attributes = True


class ConsumptionBatchResponse(BaseModel):
    folio_id: int
    items: List[FolioItemResponse]
    total: Decimal
    balance: Decimal


class CheckoutEvaluation(BaseModel):
    """Resultado del gate de checkout (informativo + bloqueo por saldo)"""
    reservation_id: int
    folio_id: Optional[int] = None
    scheduled_checkout: date
    today: date
    date_classification: DateClassification
    days_difference: int = Field(..., ge=0)
    balance: Decimal
    blocking: bool
    messages: List[str] = []


class CheckoutConfirmResponse(BaseModel):
    reservation_id: int
    status: str
    checkout_real: datetime
    notas: Optional[str] = None
    evaluation: CheckoutEvaluation
