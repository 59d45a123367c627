"""
Ciclo de vida del folio: creación perezosa (upsert) y transiciones
Abierto <-> Cerrado.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from models.folio import Folio, FolioStatus
from models.reservation import Reservation
from services.errors import ConcurrentModificationError, InvalidStateError, NotFoundError
from services.occupancy_resolver import OccupancyResolver
from services.transaction import unit_of_work
from utils.logging_utils import log_event, log_error
from utils.money import ZERO

# Dialectos con INSERT ... ON CONFLICT
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

_OPEN_FOLIO_WHERE = "status = 'open'"


class FolioLifecycleService:
    """Servicio para abrir, cerrar y reabrir folios"""

    @staticmethod
    def lock_folio(db: Session, folio_id: int) -> Folio:
        """
        Lee el folio con SELECT ... FOR UPDATE y refresca el estado en sesión.

        Raises:
            NotFoundError: el folio no existe
        """
        folio = db.query(Folio).filter(
            Folio.id == folio_id
        ).with_for_update().populate_existing().first()
        if not folio:
            raise NotFoundError("Folio", folio_id)
        return folio

    @staticmethod
    def get_folio_by_id(db: Session, folio_id: int) -> Folio:
        """Folio con items y pagos cargados"""
        folio = db.query(Folio).options(
            selectinload(Folio.items),
            selectinload(Folio.payments)
        ).filter(Folio.id == folio_id).first()
        if not folio:
            raise NotFoundError("Folio", folio_id)
        return folio

    @staticmethod
    def _insert_open_folio(db: Session, reservation_id: int) -> bool:
        """
        INSERT del folio abierto que no falla si otro proceso ya lo creó:
        el índice único parcial (reservation_id WHERE status='open') decide.

        Returns:
            True si esta llamada insertó la fila
        """
        now = datetime.utcnow()
        values = {
            "reservation_id": reservation_id,
            "balance": ZERO,
            "status": FolioStatus.OPEN.value,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }

        dialect = db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is not None:
            stmt = insert(Folio.__table__).values(**values).on_conflict_do_nothing(
                index_elements=["reservation_id"],
                index_where=text(_OPEN_FOLIO_WHERE),
            )
            return db.execute(stmt).rowcount == 1

        try:
            with db.begin_nested():
                db.execute(Folio.__table__.insert().values(**values))
        except IntegrityError:
            # Otro proceso ganó la carrera; el folio se relee a continuación
            log_error("folio", None, "Folio duplicado evitado", f"reservation_id={reservation_id}")
            return False
        return True

    @staticmethod
    def get_or_create_open_folio(
        db: Session,
        reservation_id: int,
        usuario: Optional[str] = None,
        commit: bool = True
    ) -> Folio:
        """
        Devuelve el folio abierto de la reserva, creándolo si no existe.

        Raises:
            NotFoundError: la reserva no existe
        """
        with unit_of_work(db, "folio", usuario, f"Abrir folio reservation_id={reservation_id}", commit=commit):
            reserva = db.query(Reservation).filter(Reservation.id == reservation_id).first()
            if not reserva:
                raise NotFoundError("Reserva", reservation_id)

            creado = False
            folio = OccupancyResolver.find_open_folio(db, reservation_id)
            if folio is None:
                creado = FolioLifecycleService._insert_open_folio(db, reservation_id)
                folio = OccupancyResolver.find_open_folio(db, reservation_id)
                if folio is None:
                    # El folio de la otra transacción se cerró antes de poder leerlo
                    raise ConcurrentModificationError(
                        "No se pudo obtener el folio abierto de la reserva",
                        reservation_id=reservation_id,
                    )

        if creado and commit:
            log_event("folio", usuario, "Crear folio", f"folio_id={folio.id}, reservation_id={reservation_id}")
        return folio

    @staticmethod
    def close_folio(
        db: Session,
        folio_id: int,
        usuario: Optional[str] = None,
        commit: bool = True
    ) -> Folio:
        """
        Cierra el folio. No exige saldo cero y no recalcula el saldo.

        Raises:
            NotFoundError, InvalidStateError (ya estaba cerrado)
        """
        with unit_of_work(db, "folio", usuario, f"Cerrar folio folio_id={folio_id}", commit=commit):
            folio = FolioLifecycleService.lock_folio(db, folio_id)
            if folio.is_closed():
                raise InvalidStateError("El folio ya está cerrado", folio_id=folio_id, status=folio.status)

            folio.status = FolioStatus.CLOSED.value
            folio.updated_at = datetime.utcnow()

        if commit:
            log_event("folio", usuario, "Cerrar folio", f"folio_id={folio_id}")
        return folio

    @staticmethod
    def reopen_folio(
        db: Session,
        folio_id: int,
        usuario: Optional[str] = None,
        commit: bool = True
    ) -> Folio:
        """
        Reabre un folio cerrado.

        Raises:
            NotFoundError
            InvalidStateError: ya estaba abierto, o la reserva ya tiene otro folio abierto
        """
        with unit_of_work(db, "folio", usuario, f"Reabrir folio folio_id={folio_id}", commit=commit):
            folio = FolioLifecycleService.lock_folio(db, folio_id)
            if folio.is_open():
                raise InvalidStateError("El folio ya está abierto", folio_id=folio_id, status=folio.status)

            if folio.reservation_id is not None:
                otro = OccupancyResolver.find_open_folio(db, folio.reservation_id)
                if otro is not None and otro.id != folio.id:
                    raise InvalidStateError(
                        "La reserva ya tiene otro folio abierto",
                        folio_id=folio_id,
                        reservation_id=folio.reservation_id,
                        open_folio_id=otro.id,
                    )

            folio.status = FolioStatus.OPEN.value
            folio.updated_at = datetime.utcnow()

        if commit:
            log_event("folio", usuario, "Reabrir folio", f"folio_id={folio_id}")
        return folio
