from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS
from database.conexion import Base, engine
import models  # 👈 asegura que todos los modelos estén registrados
from services.errors import (
    BlockingBalanceError,
    ConcurrentModificationError,
    FolioError,
    InvalidStateError,
    NoActiveOccupancyError,
    NotFoundError,
    ValidationError,
)
from utils.logging_utils import get_logger

_ERROR_STATUS = {
    NotFoundError: 404,
    NoActiveOccupancyError: 409,
    InvalidStateError: 409,
    ValidationError: 400,
    ConcurrentModificationError: 409,
    BlockingBalanceError: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        Base.metadata.create_all(bind=engine)
        get_logger().info("[OK] Tablas creadas (o ya existian)")
    except Exception as e:
        get_logger().error(f"[ERROR] Error creando tablas: {e}")
        raise
    yield


app = FastAPI(title="Folio Ledger", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FolioError)
async def folio_error_handler(request: Request, exc: FolioError):
    status_code = next(
        (code for error_type, code in _ERROR_STATUS.items() if isinstance(exc, error_type)),
        400,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


from endpoints import folios, espacios, checkout
app.include_router(folios.router)
app.include_router(espacios.router)
app.include_router(checkout.router)


@app.get("/")
def read_root():
    return {"message": "Folio Ledger API"}
