"""
Configuración del servicio de folios
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Database Configuration
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")


def _build_database_url() -> str:
    """Arma la URL de conexión: DATABASE_URL explícita, Postgres por partes, o SQLite local"""
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit
    if DB_HOST and DB_NAME:
        # psycopg2 por defecto
        return f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    return "sqlite:///./folios.db"


DATABASE_URL = _build_database_url()
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# Hotel Configuration
HOTEL_TIMEZONE = os.getenv("HOTEL_TIMEZONE", "America/Argentina/Buenos_Aires")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "COP")

# Logging
LOG_FILE = os.getenv("LOG_FILE", "hotel_logs.txt")

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]
