"""
memory.py — Almacen persistente de memorias.

Una memoria es el destilado de una conversacion cerrada: summary,
importance (1-10) y tags. Se recupera de tres formas:
1. Recencia: timestamp DESC
2. Importancia: importance >= threshold, importance DESC, timestamp DESC
3. Tags: union de coincidencias por tag, sin duplicados, importance DESC

Uso:
    from dreamstate.core.memory import MemoryStore
    store = MemoryStore(db)
    store.get_important(threshold=8, limit=5)
"""

from __future__ import annotations

import json
import sqlite3

from dreamstate.core.database import Database, decode_json, encode_json
from dreamstate.core.models import Memory, from_iso, to_iso
from dreamstate.errors import NotFoundError
from dreamstate.utils.logger import get_logger

logger = get_logger("dreamstate.core.memory")

_MEMORY_COLUMNS = "memory_id, conversation_id, summary, importance, timestamp, tags"


def _row_to_memory(row: sqlite3.Row) -> Memory:
    return Memory(
        memory_id=row["memory_id"],
        conversation_id=row["conversation_id"],
        summary=row["summary"],
        importance=row["importance"],
        timestamp=from_iso(row["timestamp"]),
        tags=decode_json(row["tags"], []),
    )


def _tag_pattern(tag: str) -> str:
    """
    Patron LIKE para un tag dentro de la lista JSON serializada.

    Busca el elemento con sus comillas ("code"), no la subcadena suelta,
    y escapa los comodines de LIKE con '!'.
    """
    needle = json.dumps(tag, ensure_ascii=False)
    needle = needle.replace("!", "!!").replace("%", "!%").replace("_", "!_")
    return f"%{needle}%"


class MemoryStore:
    """
    Persiste memorias inmutables y las recupera por recencia,
    importancia o tags.

    Args:
        db: Database compartida.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ================================================================
    # Escritura
    # ================================================================

    def add(self, memory: Memory) -> Memory:
        with self._db.connect() as conn:
            conn.execute(
                f"INSERT INTO memories ({_MEMORY_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    memory.memory_id,
                    memory.conversation_id,
                    memory.summary,
                    memory.importance,
                    to_iso(memory.timestamp),
                    encode_json(memory.tags),
                ),
            )
        logger.success(
            f"Memoria guardada: {memory.memory_id[:8]}... "
            f"(importance {memory.importance})"
        )
        return memory

    def update_importance(self, memory_id: str, importance: float) -> Memory:
        """
        Enmienda la importancia (se fuerza a [1, 10]).

        Raises:
            NotFoundError: Si la memoria no existe.
        """
        memory = self.get(memory_id).update_importance(importance)
        with self._db.connect() as conn:
            conn.execute(
                "UPDATE memories SET importance = ? WHERE memory_id = ?",
                (memory.importance, memory_id),
            )
        return memory

    def add_tags(self, memory_id: str, tags: list[str] | str) -> Memory:
        """
        Agrega tags sin duplicar los existentes.

        Raises:
            NotFoundError: Si la memoria no existe.
        """
        memory = self.get(memory_id).add_tags(tags)
        with self._db.connect() as conn:
            conn.execute(
                "UPDATE memories SET tags = ? WHERE memory_id = ?",
                (encode_json(memory.tags), memory_id),
            )
        return memory

    # ================================================================
    # Lectura
    # ================================================================

    def get(self, memory_id: str) -> Memory:
        """
        Raises:
            NotFoundError: Si la memoria no existe.
        """
        with self._db.connect() as conn:
            row = conn.execute(
                f"SELECT {_MEMORY_COLUMNS} FROM memories WHERE memory_id = ?",
                (memory_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError("Memory", memory_id)
        return _row_to_memory(row)

    def get_by_conversation(self, conversation_id: str) -> list[Memory]:
        with self._db.connect() as conn:
            rows = conn.execute(
                f"SELECT {_MEMORY_COLUMNS} FROM memories "
                "WHERE conversation_id = ? ORDER BY timestamp DESC",
                (conversation_id,),
            ).fetchall()
        return [_row_to_memory(row) for row in rows]

    def get_recent(self, limit: int = 10) -> list[Memory]:
        """Memorias mas recientes primero."""
        with self._db.connect() as conn:
            rows = conn.execute(
                f"SELECT {_MEMORY_COLUMNS} FROM memories "
                "ORDER BY timestamp DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_row_to_memory(row) for row in rows]

    def get_important(self, threshold: int = 7, limit: int = 10) -> list[Memory]:
        """Memorias con importance >= threshold, las mas importantes primero."""
        with self._db.connect() as conn:
            rows = conn.execute(
                f"SELECT {_MEMORY_COLUMNS} FROM memories "
                "WHERE importance >= ? "
                "ORDER BY importance DESC, timestamp DESC LIMIT ?",
                (threshold, limit),
            ).fetchall()
        return [_row_to_memory(row) for row in rows]

    def search_by_tags(self, tags: list[str], limit: int = 10) -> list[Memory]:
        """
        Memorias que contienen AL MENOS uno de los tags.

        Por cada tag se buscan candidatos con LIKE sobre la lista JSON y
        se confirman contra la lista decodificada (igualdad exacta), asi
        "code" no coincide con "decode". La union se deduplica por id
        (gana la primera aparicion) y se ordena por importance DESC,
        timestamp DESC.
        """
        seen: set[str] = set()
        matches: list[Memory] = []

        with self._db.connect() as conn:
            for tag in tags:
                rows = conn.execute(
                    f"SELECT {_MEMORY_COLUMNS} FROM memories "
                    "WHERE tags LIKE ? ESCAPE '!'",
                    (_tag_pattern(tag),),
                ).fetchall()
                for row in rows:
                    memory = _row_to_memory(row)
                    if memory.memory_id in seen or tag not in memory.tags:
                        continue
                    seen.add(memory.memory_id)
                    matches.append(memory)

        matches.sort(key=lambda m: (m.importance, m.timestamp), reverse=True)
        return matches[:limit]

    def count(self) -> int:
        with self._db.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]
