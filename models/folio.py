"""
Modelos SQLAlchemy del folio: Folio, FolioItem, Payment.

El saldo del folio es derivado: siempre es el resultado de recalcular
sum(items) - sum(pagos completados). Nunca se ajusta incrementalmente.
"""

from datetime import datetime
import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Text,
    Index,
    Numeric,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import relationship

from config import DEFAULT_CURRENCY
from database.conexion import Base


class FolioStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class ItemSource(str, enum.Enum):
    MANUAL = "manual"
    ROOM_SERVICE = "room_service"
    ACCOMMODATION = "accommodation"
    MINIBAR = "minibar"
    DISCOUNT = "discount"
    ADJUSTMENT = "adjustment"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    VOIDED = "voided"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    OTHER = "other"


PAYMENT_SOURCE_FOLIO = "folio"


class Folio(Base):
    __tablename__ = "folios"
    __table_args__ = (
        Index("idx_folio_reservation", "reservation_id"),
        Index("idx_folio_status", "status"),
        # Un solo folio abierto por reserva
        Index(
            "uq_folio_open_reservation",
            "reservation_id",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="RESTRICT"), nullable=True)

    balance = Column(Numeric(14, 2), nullable=False, default=0)
    # open | closed
    status = Column(String(20), nullable=False, default=FolioStatus.OPEN.value)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    reservation = relationship("Reservation", back_populates="folios")
    items = relationship("FolioItem", back_populates="folio", order_by="FolioItem.id")
    payments = relationship(
        "Payment",
        primaryjoin="and_(Payment.source == 'folio', foreign(Payment.source_id) == Folio.id)",
        viewonly=True,
        order_by="Payment.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def is_open(self) -> bool:
        return self.status == FolioStatus.OPEN.value

    def is_closed(self) -> bool:
        return self.status == FolioStatus.CLOSED.value


class FolioItem(Base):
    """
    Cargos: noches, minibar, room service, descuento (negativo), etc.
    """
    __tablename__ = "folio_items"
    __table_args__ = (
        Index("idx_folio_item_folio", "folio_id"),
        Index("idx_folio_item_source", "source"),
    )

    id = Column(Integer, primary_key=True)
    folio_id = Column(Integer, ForeignKey("folios.id", ondelete="RESTRICT"), nullable=False)

    source = Column(String(30), nullable=False, default=ItemSource.MANUAL.value)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    tax_code = Column(String(20), nullable=True)

    created_by = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    folio = relationship("Folio", back_populates="items")


class Payment(Base):
    """
    Pagos registrados, con alcance genérico (source, source_id).
    Para folios: source = 'folio', source_id = folio.id
    """
    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payment_source", "source", "source_id"),
        Index("idx_payment_status", "status"),
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
    )

    id = Column(Integer, primary_key=True)
    source = Column(String(30), nullable=False, default=PAYMENT_SOURCE_FOLIO)
    source_id = Column(Integer, nullable=False)

    method = Column(String(20), nullable=False)  # cash/card/transfer/other
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    reference = Column(String(120), nullable=True)
    status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    notes = Column(Text, nullable=True)

    created_by = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
