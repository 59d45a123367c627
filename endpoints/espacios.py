"""
Endpoints por espacio: ocupación activa y carga de consumos al folio
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from database.conexion import get_db
from schemas.folios import (
    ActiveOccupancyResponse,
    ConsumptionBatchRequest,
    ConsumptionBatchResponse,
    FolioItemResponse,
)
from services.consumption_posting import ConsumptionPostingService
from services.ledger_posting import LedgerPostingService
from services.occupancy_resolver import OccupancyResolver


router = APIRouter(prefix="/espacios", tags=["Espacios"])


@router.get("/{space_id}/ocupacion", response_model=ActiveOccupancyResponse)
def ocupacion_activa(
    space_id: int = Path(..., gt=0),
    fecha: Optional[date] = Query(None, description="Fecha operativa; hoy por defecto"),
    db: Session = Depends(get_db)
):
    return OccupancyResolver.resolve_active_occupancy(db, space_id, fecha)


@router.post("/{space_id}/consumos", response_model=ConsumptionBatchResponse, status_code=status.HTTP_201_CREATED)
def agregar_consumos(
    datos: ConsumptionBatchRequest,
    space_id: int = Path(..., gt=0),
    usuario: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    """Carga un lote de consumos al folio de la ocupación activa (todo o nada)"""
    items = ConsumptionPostingService.add_consumptions(db, space_id, datos.lines, usuario, datos.fecha)

    folio_id = items[0].folio_id
    resumen = LedgerPostingService.get_folio_summary(db, folio_id)
    return ConsumptionBatchResponse(
        folio_id=folio_id,
        items=[FolioItemResponse.model_validate(item) for item in items],
        total=sum((item.amount for item in items), Decimal("0.00")),
        balance=resumen["balance"],
    )
