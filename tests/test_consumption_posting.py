"""
Tests para ConsumptionPostingService (lote de consumos de un espacio)
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import SQLAlchemyError

from models import Folio, FolioItem, Reservation
from schemas.folios import ConsumptionLine
from services.checkout_gate import CheckoutGate
from services.consumption_posting import ConsumptionPostingService, describe_consumption
from services.errors import NoActiveOccupancyError, ValidationError
from services.ledger_posting import LedgerPostingService
from services.occupancy_resolver import OccupancyResolver

HOY = date(2024, 6, 7)


def _renglones():
    return [
        {"product_id": 1, "product_name": "Agua mineral", "quantity": 2, "unit_price": Decimal("3500")},
        {"product_id": 2, "product_name": "Sándwich", "quantity": 1, "unit_price": Decimal("18000"), "notes": "sin tomate"},
        {"product_id": 3, "product_name": "Cerveza", "quantity": 3, "unit_price": Decimal("6000")},
    ]


class TestDescribeConsumption:
    """Formato de la descripción del item"""

    def test_sin_notas(self):
        line = ConsumptionLine(product_id=1, product_name="Agua mineral", quantity=2, unit_price=3500)
        assert describe_consumption(line) == "2x Agua mineral"

    def test_con_notas(self):
        line = ConsumptionLine(product_id=1, product_name="Café", quantity=1, unit_price=4000, notes="descafeinado")
        assert describe_consumption(line) == "1x Café (descafeinado)"

    def test_cantidad_fraccionaria(self):
        line = ConsumptionLine(product_id=1, product_name="Vino", quantity=Decimal("1.5"), unit_price=20000)
        assert describe_consumption(line) == "1.5x Vino"


class TestAddConsumptions:
    """Carga de consumos al folio de la ocupación activa"""

    def test_postea_un_item_por_renglon(self, db, make_space, make_reservation):
        space = make_space()
        reserva = make_reservation(space)

        items = ConsumptionPostingService.add_consumptions(db, space.id, _renglones(), "mozo", HOY)

        assert [item.description for item in items] == [
            "2x Agua mineral",
            "1x Sándwich (sin tomate)",
            "3x Cerveza",
        ]
        assert [item.amount for item in items] == [Decimal("7000"), Decimal("18000"), Decimal("18000")]
        assert all(item.source == "room_service" for item in items)
        assert all(item.created_by == "mozo" for item in items)

        folio = db.query(Folio).filter(Folio.reservation_id == reserva.id).one()
        assert folio.balance == Decimal("43000")

    def test_reutiliza_el_folio_abierto(self, db, make_space, make_reservation, make_folio):
        space = make_space()
        reserva = make_reservation(space)
        folio = make_folio(reserva)

        items = ConsumptionPostingService.add_consumptions(db, space.id, _renglones()[:1], "mozo", HOY)

        assert items[0].folio_id == folio.id
        assert db.query(Folio).count() == 1

    def test_espacio_sin_ocupacion_no_postea_nada(self, db, make_space, make_reservation):
        space = make_space()
        make_reservation(space, checkin=date(2024, 6, 1), checkout=date(2024, 6, 3))

        with pytest.raises(NoActiveOccupancyError):
            ConsumptionPostingService.add_consumptions(db, space.id, _renglones(), "mozo", HOY)

        assert db.query(FolioItem).count() == 0
        assert db.query(Folio).count() == 0

    def test_lote_vacio(self, db, make_space, make_reservation):
        space = make_space()
        make_reservation(space)

        with pytest.raises(ValidationError):
            ConsumptionPostingService.add_consumptions(db, space.id, [], "mozo", HOY)

    @pytest.mark.parametrize("campo,valor", [("quantity", 0), ("unit_price", 0), ("unit_price", -100)])
    def test_renglon_invalido_no_postea_nada(self, db, make_space, make_reservation, campo, valor):
        space = make_space()
        make_reservation(space)
        renglones = _renglones()
        renglones[1][campo] = valor

        with pytest.raises(ValidationError) as exc:
            ConsumptionPostingService.add_consumptions(db, space.id, renglones, "mozo", HOY)

        assert exc.value.context["line"] == 2
        assert db.query(FolioItem).count() == 0
        assert db.query(Folio).count() == 0

    def test_fallo_en_el_tercer_renglon_revierte_todo(self, db, make_space, make_reservation, monkeypatch):
        space = make_space()
        make_reservation(space)

        original = LedgerPostingService._insert_item
        llamadas = {"n": 0}

        def insert_que_falla(session, folio, *args, **kwargs):
            llamadas["n"] += 1
            if llamadas["n"] == 3:
                raise SQLAlchemyError("fallo forzado en el tercer renglón")
            return original(session, folio, *args, **kwargs)

        monkeypatch.setattr(LedgerPostingService, "_insert_item", staticmethod(insert_que_falla))

        with pytest.raises(SQLAlchemyError):
            ConsumptionPostingService.add_consumptions(db, space.id, _renglones(), "mozo", HOY)

        assert llamadas["n"] == 3
        assert db.query(FolioItem).count() == 0
        assert db.query(Folio).count() == 0

    def test_checkout_entre_la_resolucion_y_el_posteo(
        self, db, session_factory, make_space, make_reservation, monkeypatch
    ):
        """Otra sesión confirma el checkout justo después de resolver la ocupación"""
        space = make_space()
        reserva = make_reservation(space)
        reservation_id = reserva.id

        original = OccupancyResolver.resolve_active_occupancy

        def resolver_y_checkout(session, space_id, as_of_date=None):
            ocupacion = original(session, space_id, as_of_date)
            otra = session_factory()
            try:
                CheckoutGate.confirm_checkout(otra, ocupacion.reservation_id, "recepcion", HOY)
            finally:
                otra.close()
            return ocupacion

        monkeypatch.setattr(OccupancyResolver, "resolve_active_occupancy", staticmethod(resolver_y_checkout))

        with pytest.raises(NoActiveOccupancyError):
            ConsumptionPostingService.add_consumptions(
                db, space.id,
                [{"product_id": 1, "product_name": "Agua", "quantity": 1, "unit_price": Decimal("5000")}],
                "mozo", HOY
            )

        assert db.query(Reservation).filter(Reservation.id == reservation_id).one().status == "checked_out"
        assert db.query(FolioItem).count() == 0
        assert db.query(Folio).count() == 0

    def test_descripcion_demasiado_larga_no_postea_nada(self, db, make_space, make_reservation):
        space = make_space()
        make_reservation(space)
        renglones = _renglones()
        renglones[0]["product_name"] = "P" * 150
        renglones[0]["notes"] = "n" * 200

        with pytest.raises(ValidationError) as exc:
            ConsumptionPostingService.add_consumptions(db, space.id, renglones, "mozo", HOY)

        assert exc.value.context["line"] == 1
        assert db.query(FolioItem).count() == 0
        assert db.query(Folio).count() == 0


class TestConsumptionAudit:
    """Auditoría del lote"""

    def test_lote_confirmado_registra_una_sola_linea(self, db, make_space, make_reservation, audit):
        space = make_space()
        make_reservation(space)

        ConsumptionPostingService.add_consumptions(db, space.id, _renglones(), "mozo", HOY)

        assert audit == ["Agregar consumos"]

    def test_lote_revertido_no_registra_el_folio(self, db, make_space, make_reservation, monkeypatch, audit):
        space = make_space()
        make_reservation(space)

        def insert_que_falla(session, folio, *args, **kwargs):
            raise SQLAlchemyError("fallo forzado")

        monkeypatch.setattr(LedgerPostingService, "_insert_item", staticmethod(insert_que_falla))

        with pytest.raises(SQLAlchemyError):
            ConsumptionPostingService.add_consumptions(db, space.id, _renglones(), "mozo", HOY)

        assert audit == []
