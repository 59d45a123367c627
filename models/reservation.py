"""
Reservas y espacios.
Estas tablas pertenecen al módulo de reservas; acá solo se leen (y checkout
actualiza el estado de la reserva).
"""

from datetime import datetime
import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Boolean,
    ForeignKey,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from database.conexion import Base


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Estados que "ocupan" un espacio
OCCUPYING_STATUSES = (ReservationStatus.CONFIRMED.value, ReservationStatus.CHECKED_IN.value)


class Space(Base):
    __tablename__ = "spaces"
    __table_args__ = (
        UniqueConstraint("codigo", name="uq_space_codigo"),
    )

    id = Column(Integer, primary_key=True)
    codigo = Column(String(20), nullable=False)   # "101", "PB1", "CAB-3"
    nombre = Column(String(100), nullable=True)
    activo = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("idx_res_fechas", "checkin", "checkout"),
        Index("idx_res_status", "status"),
    )

    id = Column(Integer, primary_key=True)
    nombre_titular = Column(String(120), nullable=True)

    checkin = Column(Date, nullable=False)
    checkout = Column(Date, nullable=False)

    # pending | confirmed | checked_in | checked_out | cancelled | no_show
    status = Column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)

    checkout_real = Column(DateTime(timezone=True), nullable=True)
    notas = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    spaces = relationship("ReservationSpace", back_populates="reservation", cascade="all, delete-orphan")
    folios = relationship("Folio", back_populates="reservation", order_by="Folio.created_at")


class ReservationSpace(Base):
    """
    Asignación reserva <-> espacio (N:N)
    """
    __tablename__ = "reservation_spaces"
    __table_args__ = (
        UniqueConstraint("reservation_id", "space_id", name="uq_res_space"),
        Index("idx_resspace_space", "space_id"),
    )

    id = Column(Integer, primary_key=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False)
    space_id = Column(Integer, ForeignKey("spaces.id"), nullable=False)

    reservation = relationship("Reservation", back_populates="spaces")
    space = relationship("Space")
