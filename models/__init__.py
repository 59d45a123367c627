"""
Archivo de inicialización del paquete models.
Expone todas las clases para que SQLAlchemy (Base.metadata) las detecte
al importar 'models'.
"""

# 1. Reservas y espacios (solo lectura desde el folio)
from .reservation import (
    ReservationStatus,
    OCCUPYING_STATUSES,
    Space,
    Reservation,
    ReservationSpace,
)

# 2. Folio
from .folio import (
    FolioStatus,
    ItemSource,
    PaymentStatus,
    PaymentMethod,
    PAYMENT_SOURCE_FOLIO,
    Folio,
    FolioItem,
    Payment,
)

__all__ = [
    "ReservationStatus", "OCCUPYING_STATUSES",
    "Space", "Reservation", "ReservationSpace",
    "FolioStatus", "ItemSource", "PaymentStatus", "PaymentMethod", "PAYMENT_SOURCE_FOLIO",
    "Folio", "FolioItem", "Payment",
]
