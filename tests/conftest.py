"""
Fixtures compartidas: base SQLite en memoria con los mismos modelos,
más fábricas de espacios, reservas y folios.
"""

import sys
from pathlib import Path

# Agregar directorio raíz al PYTHONPATH para imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.conexion import Base
import models  # registra todas las tablas
from models import Folio, FolioStatus, Reservation, ReservationSpace, ReservationStatus, Space


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_space(db):
    def _make(codigo: str = "101") -> Space:
        space = Space(codigo=codigo, nombre=f"Habitación {codigo}")
        db.add(space)
        db.commit()
        return space
    return _make


@pytest.fixture
def make_reservation(db):
    def _make(
        space: Space = None,
        checkin: date = date(2024, 6, 5),
        checkout: date = date(2024, 6, 10),
        status: str = ReservationStatus.CHECKED_IN.value,
    ) -> Reservation:
        reserva = Reservation(
            nombre_titular="Huésped Test",
            checkin=checkin,
            checkout=checkout,
            status=status,
        )
        db.add(reserva)
        db.flush()
        if space is not None:
            db.add(ReservationSpace(reservation_id=reserva.id, space_id=space.id))
        db.commit()
        return reserva
    return _make


@pytest.fixture
def make_folio(db, make_reservation):
    def _make(reservation: Reservation = None, status: str = FolioStatus.OPEN.value) -> Folio:
        reserva = reservation or make_reservation()
        folio = Folio(reservation_id=reserva.id, status=status, balance=0)
        db.add(folio)
        db.commit()
        return folio
    return _make


@pytest.fixture
def audit(monkeypatch):
    """Acciones registradas con log_event por los servicios, en orden"""
    acciones = []

    def registrar(area, usuario, accion, detalle=""):
        acciones.append(accion)

    for modulo in (
        "services.folio_lifecycle",
        "services.ledger_posting",
        "services.consumption_posting",
        "services.checkout_gate",
    ):
        monkeypatch.setattr(f"{modulo}.log_event", registrar)
    return acciones
