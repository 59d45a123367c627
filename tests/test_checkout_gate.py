"""
Tests para CheckoutGate: clasificación de fechas y bloqueo por saldo
"""

import pytest
from datetime import date
from decimal import Decimal

from models import Reservation
from schemas.folios import DateClassification
from services.checkout_gate import CheckoutGate
from services.errors import BlockingBalanceError, InvalidStateError, NotFoundError
from services.ledger_posting import LedgerPostingService


class TestClassifyDates:
    """Clasificación informativa de la fecha"""

    def test_en_fecha(self):
        assert CheckoutGate.classify_dates(date(2024, 6, 10), date(2024, 6, 10)) == (DateClassification.ON_SCHEDULE, 0)

    def test_anticipado(self):
        assert CheckoutGate.classify_dates(date(2024, 6, 10), date(2024, 6, 8)) == (DateClassification.EARLY_CHECKOUT, 2)

    def test_tardio(self):
        assert CheckoutGate.classify_dates(date(2024, 6, 10), date(2024, 6, 13)) == (DateClassification.LATE_CHECKOUT, 3)


class TestEvaluateCheckout:
    """Escenarios de evaluación"""

    def test_en_fecha_sin_saldo(self, db, make_reservation, make_folio):
        reserva = make_reservation(checkout=date(2024, 6, 10))
        make_folio(reserva)

        evaluacion = CheckoutGate.evaluate_checkout(db, reserva.id, date(2024, 6, 10))

        assert evaluacion.date_classification == DateClassification.ON_SCHEDULE
        assert evaluacion.days_difference == 0
        assert evaluacion.balance == Decimal("0")
        assert evaluacion.blocking is False

    def test_anticipado_dos_dias(self, db, make_reservation, make_folio):
        reserva = make_reservation(checkout=date(2024, 6, 10))
        make_folio(reserva)

        evaluacion = CheckoutGate.evaluate_checkout(db, reserva.id, date(2024, 6, 8))

        assert evaluacion.date_classification == DateClassification.EARLY_CHECKOUT
        assert evaluacion.days_difference == 2
        assert evaluacion.blocking is False
        assert "anticipado" in evaluacion.messages[0]
        assert "2 días" in evaluacion.messages[0]

    @pytest.mark.parametrize("hoy", [date(2024, 6, 8), date(2024, 6, 10), date(2024, 6, 12)])
    def test_saldo_pendiente_bloquea(self, db, make_reservation, make_folio, hoy):
        reserva = make_reservation(checkout=date(2024, 6, 10))
        folio = make_folio(reserva)
        LedgerPostingService.add_item(db, folio.id, "accommodation", "Estadía", Decimal("150000"))

        evaluacion = CheckoutGate.evaluate_checkout(db, reserva.id, hoy)

        assert evaluacion.balance == Decimal("150000")
        assert evaluacion.blocking is True
        assert evaluacion.folio_id == folio.id
        assert any("Saldo pendiente" in mensaje for mensaje in evaluacion.messages)

    def test_tardio_un_dia(self, db, make_reservation):
        reserva = make_reservation(checkout=date(2024, 6, 10))

        evaluacion = CheckoutGate.evaluate_checkout(db, reserva.id, date(2024, 6, 11))

        assert evaluacion.date_classification == DateClassification.LATE_CHECKOUT
        assert evaluacion.days_difference == 1
        assert "1 día" in evaluacion.messages[0]

    def test_sin_folio_el_saldo_es_cero(self, db, make_reservation):
        reserva = make_reservation()

        evaluacion = CheckoutGate.evaluate_checkout(db, reserva.id, date(2024, 6, 10))

        assert evaluacion.folio_id is None
        assert evaluacion.balance == Decimal("0")
        assert evaluacion.blocking is False

    def test_saldo_a_favor_no_bloquea(self, db, make_reservation, make_folio):
        reserva = make_reservation()
        folio = make_folio(reserva)
        LedgerPostingService.add_payment(db, {"source_id": folio.id, "method": "cash", "amount": Decimal("5000")})

        evaluacion = CheckoutGate.evaluate_checkout(db, reserva.id, date(2024, 6, 10))

        assert evaluacion.balance == Decimal("-5000")
        assert evaluacion.blocking is False

    def test_reserva_inexistente(self, db):
        with pytest.raises(NotFoundError):
            CheckoutGate.evaluate_checkout(db, 999, date(2024, 6, 10))


class TestConfirmCheckout:
    """Confirmación con re-validación del saldo"""

    def test_confirma_y_pasa_a_checked_out(self, db, make_reservation, make_folio):
        reserva = make_reservation(checkout=date(2024, 6, 10))
        make_folio(reserva)

        resultado = CheckoutGate.confirm_checkout(db, reserva.id, "recepcion", date(2024, 6, 10))

        assert resultado["status"] == "checked_out"
        assert resultado["evaluation"].blocking is False
        db.refresh(reserva)
        assert reserva.status == "checked_out"
        assert reserva.checkout_real is not None

    def test_revalida_el_saldo_al_confirmar(self, db, make_reservation, make_folio):
        reserva = make_reservation(checkout=date(2024, 6, 10))
        folio = make_folio(reserva)

        evaluacion = CheckoutGate.evaluate_checkout(db, reserva.id, date(2024, 6, 10))
        assert evaluacion.blocking is False

        # Un cargo llega entre la evaluación y la confirmación
        LedgerPostingService.add_item(db, folio.id, "minibar", "Snack", Decimal("8000"))

        with pytest.raises(BlockingBalanceError) as exc:
            CheckoutGate.confirm_checkout(db, reserva.id, "recepcion", date(2024, 6, 10))

        assert exc.value.balance == Decimal("8000")
        assert exc.value.context["folio_id"] == folio.id
        db.refresh(reserva)
        assert reserva.status == "checked_in"
        assert reserva.checkout_real is None

    def test_confirma_despues_del_pago(self, db, make_reservation, make_folio):
        reserva = make_reservation()
        folio = make_folio(reserva)
        LedgerPostingService.add_item(db, folio.id, "accommodation", "Estadía", Decimal("150000"))
        LedgerPostingService.add_payment(db, {"source_id": folio.id, "method": "card", "amount": Decimal("150000")})

        resultado = CheckoutGate.confirm_checkout(db, reserva.id, "recepcion", date(2024, 6, 10))

        assert resultado["status"] == "checked_out"

    @pytest.mark.parametrize("estado", ["confirmed", "checked_out", "cancelled"])
    def test_requiere_checked_in(self, db, make_reservation, estado):
        reserva = make_reservation(status=estado)

        with pytest.raises(InvalidStateError):
            CheckoutGate.confirm_checkout(db, reserva.id, "recepcion", date(2024, 6, 10))

        assert db.query(Reservation).filter(Reservation.id == reserva.id).one().status == estado

    def test_reserva_inexistente(self, db):
        with pytest.raises(NotFoundError):
            CheckoutGate.confirm_checkout(db, 999, "recepcion", date(2024, 6, 10))

    def test_guarda_notas_del_checkout(self, db, make_reservation):
        reserva = make_reservation()

        resultado = CheckoutGate.confirm_checkout(
            db, reserva.id, "recepcion", date(2024, 6, 10), notas="  Dejó la llave en conserjería  "
        )

        assert resultado["notas"] == "Check-out: Dejó la llave en conserjería"
        db.refresh(reserva)
        assert reserva.notas == "Check-out: Dejó la llave en conserjería"

    def test_notas_se_agregan_a_las_existentes(self, db, make_reservation):
        reserva = make_reservation()
        reserva.notas = "Cliente frecuente"
        db.commit()

        CheckoutGate.confirm_checkout(db, reserva.id, "recepcion", date(2024, 6, 10), notas="Sin novedades")

        db.refresh(reserva)
        assert reserva.notas == "Cliente frecuente\nCheck-out: Sin novedades"

    def test_checkout_bloqueado_no_guarda_notas(self, db, make_reservation, make_folio):
        reserva = make_reservation()
        folio = make_folio(reserva)
        LedgerPostingService.add_item(db, folio.id, "minibar", "Snack", Decimal("8000"))

        with pytest.raises(BlockingBalanceError):
            CheckoutGate.confirm_checkout(db, reserva.id, "recepcion", date(2024, 6, 10), notas="Pagará luego")

        db.refresh(reserva)
        assert reserva.notas is None
