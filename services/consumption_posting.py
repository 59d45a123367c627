"""
Consumos de un espacio ocupado (minibar, room service) -> items del folio.

El lote es todo-o-nada: si falla un renglón, no queda ninguno posteado
(ni el folio, si lo creó esta llamada).
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from models.folio import FolioItem, ItemSource
from models.reservation import OCCUPYING_STATUSES, Reservation
from schemas.folios import ConsumptionLine
from services.errors import NoActiveOccupancyError, ValidationError
from services.folio_lifecycle import FolioLifecycleService
from services.ledger_posting import DESCRIPTION_MAX_LENGTH, LedgerPostingService
from services.occupancy_resolver import OccupancyResolver
from services.transaction import unit_of_work
from utils.logging_utils import log_event
from utils.money import format_quantity, parse_to_date, quantize_money
from utils.timezone import get_operational_date


def describe_consumption(line: ConsumptionLine) -> str:
    """'2x Agua mineral (sin gas)'"""
    descripcion = f"{format_quantity(line.quantity)}x {line.product_name}"
    notas = (line.notes or "").strip()
    if notas:
        descripcion += f" ({notas})"
    return descripcion


def _coerce_lines(lines: Sequence[Union[ConsumptionLine, Dict[str, Any]]]) -> List[ConsumptionLine]:
    if not lines:
        raise ValidationError("El lote de consumos está vacío", field="lines")

    renglones = []
    for index, line in enumerate(lines):
        if not isinstance(line, ConsumptionLine):
            try:
                line = ConsumptionLine(**line)
            except PydanticValidationError as exc:
                error = exc.errors()[0]
                campo = ".".join(str(part) for part in error.get("loc", ()))
                raise ValidationError(
                    f"Renglón {index + 1} inválido: {error['msg']}",
                    line=index + 1,
                    field=campo,
                ) from exc

        largo = len(describe_consumption(line))
        if largo > DESCRIPTION_MAX_LENGTH:
            raise ValidationError(
                f"Renglón {index + 1} inválido: la descripción supera los {DESCRIPTION_MAX_LENGTH} caracteres",
                line=index + 1,
                field="notes",
                length=largo,
            )
        renglones.append(line)
    return renglones


def _lock_occupying_reservation(db: Session, space_id: int, reservation_id: int, fecha: date) -> Reservation:
    """
    Bloquea la reserva y confirma que sigue ocupando el espacio.
    Mismo orden de bloqueo que el checkout: reserva, después folio.
    """
    reserva = db.query(Reservation).filter(
        Reservation.id == reservation_id
    ).with_for_update().populate_existing().first()
    if reserva is None or reserva.status not in OCCUPYING_STATUSES or not (reserva.checkin <= fecha <= reserva.checkout):
        raise NoActiveOccupancyError(space_id, fecha)
    return reserva


class ConsumptionPostingService:
    """Servicio para cargar consumos de un espacio al folio de su ocupación activa"""

    @staticmethod
    def add_consumptions(
        db: Session,
        space_id: int,
        lines: Sequence[Union[ConsumptionLine, Dict[str, Any]]],
        actor: str,
        as_of_date: Optional[date] = None
    ) -> List[FolioItem]:
        """
        Postea un item por renglón (amount = quantity * unit_price, source = room_service).

        Raises:
            ValidationError: lote vacío o renglón inválido (antes de tocar la base)
            NotFoundError: el espacio no existe
            NoActiveOccupancyError: el espacio no está ocupado (o dejó de estarlo
                antes de postear); no se postea nada
        """
        renglones = _coerce_lines(lines)
        fecha = parse_to_date(as_of_date) if as_of_date else get_operational_date()

        ocupacion = OccupancyResolver.resolve_active_occupancy(db, space_id, fecha)

        accion = f"Agregar consumos space_id={space_id}, reservation_id={ocupacion.reservation_id}"
        with unit_of_work(db, "room_service", actor, accion):
            _lock_occupying_reservation(db, space_id, ocupacion.reservation_id, fecha)

            folio = FolioLifecycleService.get_or_create_open_folio(
                db, ocupacion.reservation_id, usuario=actor, commit=False
            )
            folio_id = folio.id

            items = []
            total = Decimal("0.00")
            for renglon in renglones:
                monto = quantize_money(renglon.quantity * renglon.unit_price)
                item = LedgerPostingService.add_item(
                    db,
                    folio_id,
                    ItemSource.ROOM_SERVICE.value,
                    describe_consumption(renglon),
                    monto,
                    created_by=actor,
                    commit=False
                )
                items.append(item)
                total += monto

        log_event(
            "room_service", actor, "Agregar consumos",
            f"space_id={space_id}, folio_id={folio_id}, renglones={len(items)}, total={total}"
        )
        return items
