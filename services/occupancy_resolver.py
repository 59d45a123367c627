"""
Resolución de ocupación: dado un espacio, cuál reserva (y cuál folio abierto)
aplica hoy.

El id del espacio solo no alcanza: un espacio acumula reservas históricas y
futuras, por eso primero se buscan las reservas vinculadas y después se
filtra por estado y rango de fechas.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from models.folio import Folio, FolioStatus
from models.reservation import OCCUPYING_STATUSES, Reservation, ReservationSpace, Space
from services.errors import NoActiveOccupancyError, NotFoundError
from utils.money import parse_to_date
from utils.timezone import get_operational_date


@dataclass
class ActiveOccupancy:
    space_id: int
    reservation_id: int
    folio_id: Optional[int]
    checkin: date
    checkout: date
    status: str


class OccupancyResolver:
    """Servicio para resolver la ocupación activa de un espacio"""

    @staticmethod
    def find_open_folio(db: Session, reservation_id: int) -> Optional[Folio]:
        """Folio abierto de la reserva, o None (la ausencia no es error)"""
        return db.query(Folio).filter(
            Folio.reservation_id == reservation_id,
            Folio.status == FolioStatus.OPEN.value
        ).first()

    @staticmethod
    def resolve_active_occupancy(
        db: Session,
        space_id: int,
        as_of_date: Optional[date] = None
    ) -> ActiveOccupancy:
        """
        Busca la reserva que ocupa el espacio en as_of_date (hoy por defecto).

        1. ids de reservas vinculadas al espacio
        2. estado en (confirmed, checked_in) y checkin <= fecha <= checkout
        3. empate: checkin más reciente primero
        4. ninguna -> NoActiveOccupancyError
        5. folio abierto de la ganadora, si existe

        Raises:
            NotFoundError: el espacio no existe
            NoActiveOccupancyError: ninguna reserva ocupa el espacio
        """
        fecha = parse_to_date(as_of_date) if as_of_date else get_operational_date()

        space = db.query(Space).filter(Space.id == space_id).first()
        if not space:
            raise NotFoundError("Espacio", space_id)

        reservation_ids = [
            row.reservation_id
            for row in db.query(ReservationSpace.reservation_id).filter(
                ReservationSpace.space_id == space_id
            ).all()
        ]
        if not reservation_ids:
            raise NoActiveOccupancyError(space_id, fecha)

        reserva = db.query(Reservation).filter(
            Reservation.id.in_(reservation_ids),
            Reservation.status.in_(OCCUPYING_STATUSES),
            Reservation.checkin <= fecha,
            Reservation.checkout >= fecha
        ).order_by(
            Reservation.checkin.desc(),
            Reservation.id.desc()
        ).first()

        if reserva is None:
            raise NoActiveOccupancyError(space_id, fecha)

        folio = OccupancyResolver.find_open_folio(db, reserva.id)

        return ActiveOccupancy(
            space_id=space_id,
            reservation_id=reserva.id,
            folio_id=folio.id if folio else None,
            checkin=reserva.checkin,
            checkout=reserva.checkout,
            status=reserva.status,
        )
