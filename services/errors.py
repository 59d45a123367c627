"""
Errores de dominio del folio.
Cada error lleva un dict `context` (folio_id, monto, saldo, ...) para que
quien llama pueda armar un mensaje preciso.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class FolioError(Exception):
    """Base de todos los errores de dominio del folio"""

    code = "folio_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {
            key: (str(value) if isinstance(value, Decimal) else value)
            for key, value in context.items()
            if value is not None
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": self.message, "context": self.context}


class NotFoundError(FolioError):
    """Folio, item, reserva o espacio inexistente"""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any, **context: Any):
        super().__init__(f"{entity} {entity_id} no encontrado", entity=entity, entity_id=entity_id, **context)
        self.entity = entity
        self.entity_id = entity_id


class NoActiveOccupancyError(FolioError):
    """Ninguna reserva ocupa el espacio en la fecha dada"""

    code = "no_active_occupancy"

    def __init__(self, space_id: int, as_of_date=None):
        fecha = as_of_date.isoformat() if as_of_date is not None else None
        super().__init__(
            f"El espacio {space_id} no tiene una ocupación activa"
            + (f" al {fecha}" if fecha else ""),
            space_id=space_id,
            as_of_date=fecha,
        )
        self.space_id = space_id
        self.as_of_date = as_of_date


class InvalidStateError(FolioError):
    code = "invalid_state"


class ValidationError(FolioError):
    code = "validation_error"


class ConcurrentModificationError(FolioError):
    """Otro escritor modificó el folio/item en paralelo. No se reintenta."""

    code = "concurrent_modification"


class BlockingBalanceError(FolioError):
    """Checkout con saldo pendiente"""

    code = "blocking_balance"

    def __init__(self, reservation_id: int, folio_id: Optional[int], balance: Decimal):
        super().__init__(
            f"El huésped tiene un saldo pendiente de {balance}. "
            "No se puede realizar el check-out hasta que se complete el pago.",
            reservation_id=reservation_id,
            folio_id=folio_id,
            balance=balance,
        )
        self.reservation_id = reservation_id
        self.folio_id = folio_id
        self.balance = balance
