"""
Unidad de trabajo compartida por los servicios del folio.

commit=True: confirma al final y hace rollback ante cualquier error.
commit=False: solo hace flush; la transacción (y el rollback) quedan en manos
de quien llama, que compone varias operaciones en una sola.

Los servicios escriben su línea de auditoría (log_event) solo después del
commit; con commit=False la escribe quien confirma la transacción.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from services.errors import ConcurrentModificationError
from utils.logging_utils import log_error


@contextmanager
def unit_of_work(
    db: Session,
    area: str,
    usuario: Optional[str],
    accion: str,
    commit: bool = True,
) -> Iterator[Session]:
    try:
        yield db
        if commit:
            db.commit()
        else:
            db.flush()
    except StaleDataError as exc:
        if commit:
            db.rollback()
        log_error(area, usuario, "Conflicto concurrente", f"{accion}: {exc}")
        raise ConcurrentModificationError(
            f"{accion}: el folio fue modificado por otra operación, reintente"
        ) from exc
    except Exception as exc:
        if commit:
            db.rollback()
        log_error(area, usuario, "Error", f"{accion}: {exc}")
        raise
