"""
Posteo en el folio: items, descuentos, pagos y movimientos entre folios.

Este servicio es el único que escribe folio.balance, y siempre lo hace
recalculando desde cero: sum(items.amount) - sum(pagos completados).
Cada operación bloquea la fila del folio, lee items/pagos y escribe el saldo
dentro de la misma transacción.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from models.folio import (
    PAYMENT_SOURCE_FOLIO,
    Folio,
    FolioItem,
    ItemSource,
    Payment,
    PaymentStatus,
)
from schemas.folios import PaymentCreate
from services.errors import (
    ConcurrentModificationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from services.folio_lifecycle import FolioLifecycleService
from services.transaction import unit_of_work
from utils.logging_utils import log_event
from utils.money import quantize_money, to_decimal

DISCOUNT_PREFIX = "Descuento: "
DESCRIPTION_MAX_LENGTH = 255

_VALID_SOURCES = {source.value for source in ItemSource}


def _require_open(folio: Folio, accion: str) -> None:
    # TODO: confirmar con producto si un folio cerrado admite correcciones administrativas
    if folio.is_closed():
        raise InvalidStateError(
            f"No se puede {accion} en un folio cerrado",
            folio_id=folio.id,
            status=folio.status,
        )


def _validate_amount(amount, campo: str = "amount") -> Decimal:
    monto = to_decimal(amount, fallback=None)
    if monto is None or not monto.is_finite():
        raise ValidationError(f"Monto inválido: {amount!r}", field=campo, amount=str(amount))
    monto = quantize_money(monto)
    if monto == 0:
        raise ValidationError("El monto no puede ser cero", field=campo, amount=monto)
    return monto


def _validate_description(description: Optional[str]) -> str:
    descripcion = (description or "").strip()
    if not descripcion:
        raise ValidationError("La descripción es obligatoria", field="description")
    if len(descripcion) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"La descripción supera los {DESCRIPTION_MAX_LENGTH} caracteres",
            field="description",
            length=len(descripcion),
        )
    return descripcion


class LedgerPostingService:
    """Servicio para postear cargos y pagos contra un folio"""

    # ------------------------------------------------------------------
    # Saldo
    # ------------------------------------------------------------------

    @staticmethod
    def compute_totals(db: Session, folio_id: int) -> Tuple[Decimal, Decimal, int, int]:
        """
        Totales actuales del folio, leídos de items y pagos.

        Returns:
            (subtotal_items, total_pagos_completados, cantidad_items, cantidad_pagos_completados)
        """
        subtotal, item_count = db.query(
            func.coalesce(func.sum(FolioItem.amount), 0),
            func.count(FolioItem.id)
        ).filter(FolioItem.folio_id == folio_id).one()

        pagos, payment_count = db.query(
            func.coalesce(func.sum(Payment.amount), 0),
            func.count(Payment.id)
        ).filter(
            Payment.source == PAYMENT_SOURCE_FOLIO,
            Payment.source_id == folio_id,
            Payment.status == PaymentStatus.COMPLETED.value
        ).one()

        return quantize_money(subtotal), quantize_money(pagos), int(item_count), int(payment_count)

    @staticmethod
    def _recompute(db: Session, folio: Folio) -> Decimal:
        """Recalcula y asigna el saldo. El folio debe estar bloqueado por quien llama."""
        subtotal, pagos, _, _ = LedgerPostingService.compute_totals(db, folio.id)
        balance = subtotal - pagos
        folio.balance = balance
        folio.updated_at = datetime.utcnow()
        db.flush()
        return balance

    @staticmethod
    def recompute_balance(
        db: Session,
        folio_id: int,
        usuario: Optional[str] = None,
        commit: bool = True
    ) -> Decimal:
        """
        Recalcula el saldo completo del folio (idempotente).

        Raises:
            NotFoundError
        """
        with unit_of_work(db, "folio", usuario, f"Recalcular saldo folio_id={folio_id}", commit=commit):
            folio = FolioLifecycleService.lock_folio(db, folio_id)
            balance = LedgerPostingService._recompute(db, folio)
        return balance

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_item(
        db: Session,
        folio: Folio,
        source: str,
        description: str,
        amount: Decimal,
        tax_code: Optional[str],
        created_by: Optional[str]
    ) -> FolioItem:
        item = FolioItem(
            folio_id=folio.id,
            source=source,
            description=description,
            amount=amount,
            tax_code=tax_code,
            created_by=created_by,
            created_at=datetime.utcnow()
        )
        db.add(item)
        db.flush()
        return item

    @staticmethod
    def add_item(
        db: Session,
        folio_id: int,
        source: str,
        description: str,
        amount,
        tax_code: Optional[str] = None,
        created_by: Optional[str] = None,
        commit: bool = True
    ) -> FolioItem:
        """
        Agrega un cargo (o crédito, si amount < 0) y recalcula el saldo.

        Raises:
            ValidationError: monto cero/inválido, descripción vacía, origen desconocido
            NotFoundError: el folio no existe
            InvalidStateError: el folio está cerrado
        """
        origen = source.value if isinstance(source, ItemSource) else source
        if origen not in _VALID_SOURCES:
            raise ValidationError(f"Origen de cargo desconocido: {source}", field="source")
        descripcion = _validate_description(description)
        monto = _validate_amount(amount)

        with unit_of_work(db, "folio", created_by, f"Agregar item folio_id={folio_id}", commit=commit):
            folio = FolioLifecycleService.lock_folio(db, folio_id)
            _require_open(folio, "agregar items")
            item = LedgerPostingService._insert_item(
                db, folio, origen, descripcion, monto, tax_code, created_by
            )
            balance = LedgerPostingService._recompute(db, folio)

        if commit:
            log_event("folio", created_by, "Agregar item", f"folio_id={folio_id}, monto={monto}, saldo={balance}")
        return item

    @staticmethod
    def delete_item(
        db: Session,
        item_id: int,
        folio_id: int,
        usuario: Optional[str] = None,
        commit: bool = True
    ) -> Decimal:
        """
        Elimina un item del folio y recalcula.

        Returns:
            nuevo saldo
        """
        with unit_of_work(db, "folio", usuario, f"Eliminar item item_id={item_id}", commit=commit):
            folio = FolioLifecycleService.lock_folio(db, folio_id)
            _require_open(folio, "eliminar items")

            item = db.query(FolioItem).filter(
                FolioItem.id == item_id,
                FolioItem.folio_id == folio_id
            ).first()
            if not item:
                raise NotFoundError("Item", item_id, folio_id=folio_id)

            monto = item.amount
            db.delete(item)
            db.flush()
            balance = LedgerPostingService._recompute(db, folio)

        if commit:
            log_event("folio", usuario, "Eliminar item", f"folio_id={folio_id}, item_id={item_id}, monto={monto}")
        return balance

    @staticmethod
    def apply_discount(
        db: Session,
        folio_id: int,
        amount,
        description: str,
        created_by: Optional[str] = None,
        commit: bool = True
    ) -> FolioItem:
        """Descuento = item negativo con prefijo 'Descuento: '"""
        monto = _validate_amount(amount)
        descripcion = _validate_description(description)
        return LedgerPostingService.add_item(
            db,
            folio_id,
            ItemSource.DISCOUNT.value,
            f"{DISCOUNT_PREFIX}{descripcion}",
            -abs(monto),
            created_by=created_by,
            commit=commit
        )

    # ------------------------------------------------------------------
    # Pagos
    # ------------------------------------------------------------------

    @staticmethod
    def add_payment(
        db: Session,
        data: Union[PaymentCreate, Dict[str, Any]],
        commit: bool = True
    ) -> Payment:
        """
        Registra un pago contra el folio indicado en source_id y recalcula.
        No procesa cobros: solo persiste el registro del pago.

        Raises:
            ValidationError, NotFoundError, InvalidStateError
        """
        if isinstance(data, dict):
            try:
                data = PaymentCreate(**data)
            except PydanticValidationError as exc:
                raise ValidationError(f"Pago inválido: {exc.errors()[0]['msg']}") from exc

        if data.source != PAYMENT_SOURCE_FOLIO:
            raise ValidationError(f"Origen de pago no soportado: {data.source}", field="source")
        monto = _validate_amount(data.amount)
        if monto < 0:
            raise ValidationError("El monto del pago debe ser mayor a 0", field="amount", amount=monto)

        folio_id = data.source_id
        with unit_of_work(db, "payment", data.created_by, f"Registrar pago folio_id={folio_id}", commit=commit):
            folio = FolioLifecycleService.lock_folio(db, folio_id)
            _require_open(folio, "registrar pagos")

            pago = Payment(
                source=PAYMENT_SOURCE_FOLIO,
                source_id=folio.id,
                method=data.method.value,
                amount=monto,
                currency=data.currency,
                reference=data.reference,
                status=data.status.value,
                notes=data.notes,
                created_by=data.created_by,
                created_at=datetime.utcnow()
            )
            db.add(pago)
            db.flush()
            balance = LedgerPostingService._recompute(db, folio)

        if commit:
            log_event(
                "payment", data.created_by, "Registrar pago",
                f"folio_id={folio_id}, monto={monto}, estado={data.status.value}, saldo={balance}"
            )
        return pago

    # ------------------------------------------------------------------
    # Movimiento entre folios
    # ------------------------------------------------------------------

    @staticmethod
    def move_item(
        db: Session,
        item_id: int,
        from_folio_id: int,
        to_folio_id: int,
        usuario: Optional[str] = None,
        commit: bool = True
    ) -> Dict[str, Any]:
        """
        Mueve un item de un folio a otro y recalcula ambos en una sola transacción.
        Los bloqueos se toman siempre en orden ascendente de id.

        Raises:
            ValidationError: origen == destino
            NotFoundError: folio o item inexistente
            InvalidStateError: alguno de los folios está cerrado
            ConcurrentModificationError: el item ya no está en el folio de origen
        """
        if from_folio_id == to_folio_id:
            raise ValidationError(
                "El folio de origen y destino son el mismo",
                folio_id=from_folio_id,
            )

        accion = f"Mover item item_id={item_id} {from_folio_id}->{to_folio_id}"
        with unit_of_work(db, "folio", usuario, accion, commit=commit):
            bloqueados = {
                fid: FolioLifecycleService.lock_folio(db, fid)
                for fid in sorted((from_folio_id, to_folio_id))
            }
            origen = bloqueados[from_folio_id]
            destino = bloqueados[to_folio_id]
            _require_open(origen, "mover items")
            _require_open(destino, "mover items")

            item = db.query(FolioItem).filter(
                FolioItem.id == item_id
            ).with_for_update().populate_existing().first()
            if not item:
                raise NotFoundError("Item", item_id, folio_id=from_folio_id)
            if item.folio_id != from_folio_id:
                raise ConcurrentModificationError(
                    "El item ya no pertenece al folio de origen",
                    item_id=item_id,
                    from_folio_id=from_folio_id,
                    current_folio_id=item.folio_id,
                )

            item.folio = destino
            db.flush()

            from_balance = LedgerPostingService._recompute(db, origen)
            to_balance = LedgerPostingService._recompute(db, destino)

        if commit:
            log_event("folio", usuario, "Mover item", f"item_id={item_id}, monto={item.amount}, {from_folio_id}->{to_folio_id}")
        return {
            "item_id": item_id,
            "from_folio_id": from_folio_id,
            "to_folio_id": to_folio_id,
            "from_balance": from_balance,
            "to_balance": to_balance,
        }

    # ------------------------------------------------------------------
    # Resumen
    # ------------------------------------------------------------------

    @staticmethod
    def get_folio_summary(db: Session, folio_id: int) -> Dict[str, Any]:
        """Subtotal, pagos, saldo y conteos, derivados de las filas actuales"""
        folio = db.query(Folio).filter(Folio.id == folio_id).first()
        if not folio:
            raise NotFoundError("Folio", folio_id)

        subtotal, pagos, item_count, payment_count = LedgerPostingService.compute_totals(db, folio_id)
        return {
            "folio_id": folio.id,
            "reservation_id": folio.reservation_id,
            "status": folio.status,
            "subtotal": subtotal,
            "payments": pagos,
            "balance": subtotal - pagos,
            "item_count": item_count,
            "payment_count": payment_count,
        }
