"""
Servicios de negocio del folio
"""

from .errors import (
    FolioError,
    NotFoundError,
    NoActiveOccupancyError,
    InvalidStateError,
    ValidationError,
    ConcurrentModificationError,
    BlockingBalanceError,
)
from .occupancy_resolver import ActiveOccupancy, OccupancyResolver
from .folio_lifecycle import FolioLifecycleService
from .ledger_posting import LedgerPostingService
from .consumption_posting import ConsumptionPostingService
from .checkout_gate import CheckoutGate

__all__ = [
    "FolioError",
    "NotFoundError",
    "NoActiveOccupancyError",
    "InvalidStateError",
    "ValidationError",
    "ConcurrentModificationError",
    "BlockingBalanceError",
    "ActiveOccupancy",
    "OccupancyResolver",
    "FolioLifecycleService",
    "LedgerPostingService",
    "ConsumptionPostingService",
    "CheckoutGate",
]
