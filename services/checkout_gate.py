"""
Gate de checkout.

- Fecha: compara hoy con el checkout programado (anticipado / tardío / en
  fecha). Es solo informativo.
- Saldo: si el folio tiene saldo > 0, el checkout se bloquea.

El saldo se vuelve a verificar dentro de la transacción que confirma el
checkout; la evaluación mostrada al abrir el diálogo no se reutiliza.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from models.folio import Folio, FolioStatus
from models.reservation import Reservation, ReservationStatus
from schemas.folios import CheckoutEvaluation, DateClassification
from services.errors import BlockingBalanceError, InvalidStateError, NotFoundError
from services.folio_lifecycle import FolioLifecycleService
from services.ledger_posting import LedgerPostingService
from services.transaction import unit_of_work
from utils.logging_utils import log_event
from utils.money import ZERO
from utils.timezone import get_operational_date


def _dias(n: int) -> str:
    return f"{n} {'día' if n == 1 else 'días'}"


class CheckoutGate:
    """Servicio para validar y confirmar el checkout de una reserva"""

    @staticmethod
    def classify_dates(scheduled_checkout: date, today: date) -> Tuple[DateClassification, int]:
        """
        Returns:
            (clasificación, días de diferencia en valor absoluto)
        """
        diff = (scheduled_checkout - today).days
        if diff > 0:
            return DateClassification.EARLY_CHECKOUT, diff
        if diff < 0:
            return DateClassification.LATE_CHECKOUT, -diff
        return DateClassification.ON_SCHEDULE, 0

    @staticmethod
    def _folio_for_reservation(db: Session, reservation_id: int, lock: bool = False) -> Optional[Folio]:
        """Folio abierto de la reserva; si no hay, el más reciente"""
        query = db.query(Folio).filter(Folio.reservation_id == reservation_id)
        folio = query.filter(Folio.status == FolioStatus.OPEN.value).first()
        if folio is None:
            folio = query.order_by(Folio.created_at.desc(), Folio.id.desc()).first()
        if folio is not None and lock:
            folio = FolioLifecycleService.lock_folio(db, folio.id)
        return folio

    @staticmethod
    def _evaluate(db: Session, reserva: Reservation, folio: Optional[Folio], today: date) -> CheckoutEvaluation:
        if folio is not None:
            subtotal, pagos, _, _ = LedgerPostingService.compute_totals(db, folio.id)
            balance = subtotal - pagos
        else:
            balance = ZERO

        clasificacion, dias = CheckoutGate.classify_dates(reserva.checkout, today)
        fecha = reserva.checkout.isoformat()

        mensajes = []
        if clasificacion == DateClassification.EARLY_CHECKOUT:
            mensajes.append(
                f"Check-out anticipado: la fecha programada es el {fecha} (en {_dias(dias)}). "
                "Esto podría generar ajustes en la facturación."
            )
        elif clasificacion == DateClassification.LATE_CHECKOUT:
            mensajes.append(
                f"Check-out tardío: la fecha programada era el {fecha} (hace {_dias(dias)}). "
                "Verifique si hay cargos adicionales por noches extras."
            )
        else:
            mensajes.append("El check-out se está realizando en la fecha programada.")

        blocking = balance > 0
        if blocking:
            mensajes.append(
                f"Saldo pendiente de {balance}. No se puede realizar el check-out hasta que se complete el pago."
            )

        return CheckoutEvaluation(
            reservation_id=reserva.id,
            folio_id=folio.id if folio else None,
            scheduled_checkout=reserva.checkout,
            today=today,
            date_classification=clasificacion,
            days_difference=dias,
            balance=balance,
            blocking=blocking,
            messages=mensajes,
        )

    @staticmethod
    def evaluate_checkout(db: Session, reservation_id: int, today: Optional[date] = None) -> CheckoutEvaluation:
        """
        Evaluación de solo lectura.

        Raises:
            NotFoundError: la reserva no existe
        """
        reserva = db.query(Reservation).filter(Reservation.id == reservation_id).first()
        if not reserva:
            raise NotFoundError("Reserva", reservation_id)

        folio = CheckoutGate._folio_for_reservation(db, reservation_id)
        return CheckoutGate._evaluate(db, reserva, folio, today or get_operational_date())

    @staticmethod
    def confirm_checkout(
        db: Session,
        reservation_id: int,
        usuario: str,
        today: Optional[date] = None,
        notas: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Confirma el checkout: bloquea reserva y folio, re-evalúa el saldo y
        pasa la reserva a checked_out. Las notas del checkout se agregan a
        reserva.notas.

        Raises:
            NotFoundError
            InvalidStateError: la reserva no está en checked_in
            BlockingBalanceError: saldo > 0 al momento de confirmar
        """
        hoy = today or get_operational_date()

        with unit_of_work(db, "checkout", usuario, f"Confirmar checkout reservation_id={reservation_id}"):
            reserva = db.query(Reservation).filter(
                Reservation.id == reservation_id
            ).with_for_update().populate_existing().first()
            if not reserva:
                raise NotFoundError("Reserva", reservation_id)

            if reserva.status != ReservationStatus.CHECKED_IN.value:
                raise InvalidStateError(
                    f"La reserva no está en estado checked_in (está: {reserva.status})",
                    reservation_id=reservation_id,
                    status=reserva.status,
                )

            folio = CheckoutGate._folio_for_reservation(db, reservation_id, lock=True)
            evaluacion = CheckoutGate._evaluate(db, reserva, folio, hoy)
            if evaluacion.blocking:
                raise BlockingBalanceError(reservation_id, evaluacion.folio_id, evaluacion.balance)

            checkout_real = datetime.utcnow()
            reserva.status = ReservationStatus.CHECKED_OUT.value
            reserva.checkout_real = checkout_real
            reserva.updated_at = checkout_real
            nota = (notas or "").strip()
            if nota:
                nota = f"Check-out: {nota}"
                reserva.notas = f"{reserva.notas}\n{nota}" if reserva.notas else nota
            notas_finales = reserva.notas

        log_event(
            "checkout", usuario, "Confirmar checkout",
            f"reservation_id={reservation_id}, clasificacion={evaluacion.date_classification.value}, "
            f"dias={evaluacion.days_difference}"
        )
        return {
            "reservation_id": reservation_id,
            "status": ReservationStatus.CHECKED_OUT.value,
            "checkout_real": checkout_real,
            "notas": notas_finales,
            "evaluation": evaluacion,
        }
