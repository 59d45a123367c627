"""
Endpoints de checkout: evaluación (al abrir el diálogo) y confirmación.
La confirmación vuelve a validar el saldo; no confía en la evaluación previa.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from database.conexion import get_db
from schemas.folios import CheckoutConfirmResponse, CheckoutEvaluation
from services.checkout_gate import CheckoutGate


router = APIRouter(prefix="/reservas", tags=["Check-out"])


@router.get("/{reservation_id}/checkout", response_model=CheckoutEvaluation)
def evaluar_checkout(
    reservation_id: int = Path(..., gt=0),
    fecha: Optional[date] = Query(None, description="Fecha operativa; hoy por defecto"),
    db: Session = Depends(get_db)
):
    return CheckoutGate.evaluate_checkout(db, reservation_id, fecha)


@router.post("/{reservation_id}/checkout", response_model=CheckoutConfirmResponse)
def confirmar_checkout(
    reservation_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    fecha: Optional[date] = Query(None, description="Fecha operativa; hoy por defecto"),
    notas: Optional[str] = Query(None, max_length=500, description="Notas del check-out"),
    db: Session = Depends(get_db)
):
    return CheckoutGate.confirm_checkout(db, reservation_id, usuario, fecha, notas=notas)
