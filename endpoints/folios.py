"""
Endpoints del folio: items, descuentos, pagos, movimientos, cierre/reapertura.
Los errores de dominio se traducen a HTTP en main.py.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from database.conexion import get_db
from schemas.folios import (
    BalanceResponse,
    DiscountCreate,
    FolioItemCreate,
    FolioItemResponse,
    FolioPaymentRequest,
    FolioResponse,
    FolioSummaryResponse,
    MoveItemRequest,
    MoveItemResponse,
    PaymentCreate,
    PaymentResponse,
)
from services.folio_lifecycle import FolioLifecycleService
from services.ledger_posting import LedgerPostingService


router = APIRouter(tags=["Folios"])


@router.post("/reservas/{reservation_id}/folio", response_model=FolioResponse)
def obtener_o_crear_folio(
    reservation_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    """Folio abierto de la reserva (se crea si no existe)"""
    folio = FolioLifecycleService.get_or_create_open_folio(db, reservation_id, usuario=usuario)
    return FolioLifecycleService.get_folio_by_id(db, folio.id)


@router.get("/folios/{folio_id}", response_model=FolioResponse)
def obtener_folio(folio_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return FolioLifecycleService.get_folio_by_id(db, folio_id)


@router.get("/folios/{folio_id}/resumen", response_model=FolioSummaryResponse)
def resumen_folio(folio_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    return LedgerPostingService.get_folio_summary(db, folio_id)


@router.post("/folios/{folio_id}/items", response_model=FolioItemResponse, status_code=status.HTTP_201_CREATED)
def agregar_item(
    datos: FolioItemCreate,
    folio_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    return LedgerPostingService.add_item(
        db,
        folio_id,
        datos.source.value,
        datos.description,
        datos.amount,
        tax_code=datos.tax_code,
        created_by=usuario
    )


@router.delete("/folios/{folio_id}/items/{item_id}", response_model=BalanceResponse)
def eliminar_item(
    folio_id: int = Path(..., gt=0),
    item_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    balance = LedgerPostingService.delete_item(db, item_id, folio_id, usuario=usuario)
    return BalanceResponse(folio_id=folio_id, balance=balance)


@router.post("/folios/{folio_id}/descuentos", response_model=FolioItemResponse, status_code=status.HTTP_201_CREATED)
def aplicar_descuento(
    datos: DiscountCreate,
    folio_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    return LedgerPostingService.apply_discount(db, folio_id, datos.amount, datos.description, created_by=usuario)


@router.post("/folios/{folio_id}/pagos", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def registrar_pago(
    datos: FolioPaymentRequest,
    folio_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    pago = PaymentCreate(**datos.dict(), source_id=folio_id, created_by=usuario)
    return LedgerPostingService.add_payment(db, pago)


@router.post("/folios/{folio_id}/items/{item_id}/mover", response_model=MoveItemResponse)
def mover_item(
    datos: MoveItemRequest,
    folio_id: int = Path(..., gt=0),
    item_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    return LedgerPostingService.move_item(db, item_id, folio_id, datos.to_folio_id, usuario=usuario)


@router.post("/folios/{folio_id}/recalcular", response_model=BalanceResponse)
def recalcular_saldo(
    folio_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    balance = LedgerPostingService.recompute_balance(db, folio_id, usuario=usuario)
    return BalanceResponse(folio_id=folio_id, balance=balance)


@router.post("/folios/{folio_id}/cerrar", response_model=FolioResponse)
def cerrar_folio(
    folio_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    FolioLifecycleService.close_folio(db, folio_id, usuario=usuario)
    return FolioLifecycleService.get_folio_by_id(db, folio_id)


@router.post("/folios/{folio_id}/reabrir", response_model=FolioResponse)
def reabrir_folio(
    folio_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    FolioLifecycleService.reopen_folio(db, folio_id, usuario=usuario)
    return FolioLifecycleService.get_folio_by_id(db, folio_id)
