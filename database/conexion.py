from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config import DATABASE_URL, SQL_ECHO

# SQLite necesita check_same_thread=False para compartir la conexión con FastAPI
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=SQL_ECHO, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# ✅ IMPORTANTE: NO pongas create_all aquí directamente si estás importando este archivo desde otros lados.
# Se hace desde main.py luego de importar los modelos


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
