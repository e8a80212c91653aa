"""
database.py — Acceso compartido a la base SQLite de dreamstate.

Una sola base con cuatro conjuntos de registros (persona, conversations,
memories, dreamstate_updates) mas los mensajes de cada conversacion.
Usa schema.sql para inicializarse; auto-crea el archivo en el primer uso.

Cada operacion abre una conexion corta (WAL, foreign keys activas) y
traduce sqlite3.Error a StorageError.

Uso:
    from dreamstate.core.database import Database
    db = Database("data/dreamstate.db")
    with db.connect() as conn:
        conn.execute("SELECT 1")
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from dreamstate.errors import StorageError
from dreamstate.utils.logger import get_logger

logger = get_logger("dreamstate.core.database")

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def encode_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def decode_json(raw: str | None, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    return json.loads(raw)


class Database:
    """
    Base SQLite compartida por los stores.

    Args:
        db_path: Ruta al archivo SQLite.
        schema_path: Ruta a schema.sql (default: el del paquete).
    """

    def __init__(
        self,
        db_path: str | Path = "data/dreamstate.db",
        schema_path: str | Path | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._schema_path = Path(schema_path) if schema_path else SCHEMA_PATH
        self._ensure_initialized()

    @property
    def path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        """Crea una conexion a SQLite con row_factory."""
        conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _ensure_initialized(self) -> None:
        """Aplica schema.sql (idempotente: CREATE ... IF NOT EXISTS)."""
        try:
            schema_sql = self._schema_path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"No se pudo leer el schema: {e}") from e

        with self.connect() as conn:
            conn.executescript(schema_sql)
        logger.info(f"Base de datos lista en {self._db_path}")

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """
        Conexion transaccional: commit al salir, rollback si algo falla.

        Raises:
            StorageError: Si SQLite falla al abrir, leer o escribir.
        """
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StorageError(f"No se pudo abrir {self._db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        finally:
            conn.close()
