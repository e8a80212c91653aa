"""
persona.py — Persistencia de la persona y de su historial de dreamstate.

Maneja dos tablas:
- persona: una fila por persona; la "actual" es la de last_updated mas reciente
- dreamstate_updates: log append-only de evoluciones (FK a persona)

Uso:
    from dreamstate.core.persona import PersonaStore
    store = PersonaStore(db)
    persona = store.ensure_exists()
"""

from __future__ import annotations

import sqlite3

from dreamstate.core.database import Database, decode_json, encode_json
from dreamstate.core.models import (
    DreamstateUpdate,
    Persona,
    PersonaState,
    from_iso,
    to_iso,
)
from dreamstate.errors import NotFoundError
from dreamstate.utils.logger import get_logger

logger = get_logger("dreamstate.core.persona")

# "values" siempre entre comillas: es palabra reservada en SQL
_PERSONA_COLUMNS = (
    'persona_id, traits, "values", preferences, biography, last_updated'
)


def _row_to_persona(row: sqlite3.Row) -> Persona:
    return Persona(
        persona_id=row["persona_id"],
        traits=decode_json(row["traits"], {}),
        values=decode_json(row["values"], {}),
        preferences=decode_json(row["preferences"], {}),
        biography=row["biography"],
        last_updated=from_iso(row["last_updated"]),
    )


def _row_to_update(row: sqlite3.Row) -> DreamstateUpdate:
    return DreamstateUpdate(
        update_id=row["update_id"],
        persona_id=row["persona_id"],
        description=row["description"],
        justification=row["justification"],
        previous_state=PersonaState.from_dict(decode_json(row["previous_state"], {})),
        new_state=PersonaState.from_dict(decode_json(row["new_state"], {})),
        timestamp=from_iso(row["timestamp"]),
    )


class PersonaStore:
    """
    Carga y guarda la persona evolutiva y su log de DreamstateUpdates.

    Args:
        db: Database compartida.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ================================================================
    # Persona
    # ================================================================

    def save(self, persona: Persona) -> Persona:
        """Upsert por persona_id; la fila nunca se borra (los updates la referencian)."""
        with self._db.connect() as conn:
            conn.execute(
                f"INSERT INTO persona ({_PERSONA_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(persona_id) DO UPDATE SET "
                "traits = excluded.traits, "
                '"values" = excluded."values", '
                "preferences = excluded.preferences, "
                "biography = excluded.biography, "
                "last_updated = excluded.last_updated",
                (
                    persona.persona_id,
                    encode_json(persona.traits),
                    encode_json(persona.values),
                    encode_json(persona.preferences),
                    persona.biography,
                    to_iso(persona.last_updated),
                ),
            )
        return persona

    def get(self, persona_id: str) -> Persona:
        """
        Carga una persona por id.

        Raises:
            NotFoundError: Si no existe.
        """
        with self._db.connect() as conn:
            row = conn.execute(
                f"SELECT {_PERSONA_COLUMNS} FROM persona WHERE persona_id = ?",
                (persona_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError("Persona", persona_id)
        return _row_to_persona(row)

    def load_current(self) -> Persona | None:
        """Persona actualizada mas recientemente, o None si no hay ninguna."""
        with self._db.connect() as conn:
            row = conn.execute(
                f"SELECT {_PERSONA_COLUMNS} FROM persona "
                "ORDER BY last_updated DESC LIMIT 1"
            ).fetchone()
        return _row_to_persona(row) if row else None

    def create_default(self) -> Persona:
        persona = self.save(Persona.default())
        logger.success(f"Persona default creada: {persona.persona_id[:8]}...")
        return persona

    def ensure_exists(self) -> Persona:
        """Retorna la persona actual, creando la default si no hay ninguna."""
        persona = self.load_current()
        if persona is None:
            return self.create_default()
        return persona

    # ================================================================
    # Dreamstate updates
    # ================================================================

    def add_update(self, update: DreamstateUpdate) -> DreamstateUpdate:
        """Agrega un registro al log (append-only, nunca se reescribe)."""
        with self._db.connect() as conn:
            conn.execute(
                "INSERT INTO dreamstate_updates "
                "(update_id, persona_id, description, justification, "
                "previous_state, new_state, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    update.update_id,
                    update.persona_id,
                    update.description,
                    update.justification,
                    encode_json(update.previous_state.to_dict()),
                    encode_json(update.new_state.to_dict()),
                    to_iso(update.timestamp),
                ),
            )
        return update

    def get_update(self, update_id: str) -> DreamstateUpdate:
        """
        Raises:
            NotFoundError: Si no existe.
        """
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM dreamstate_updates WHERE update_id = ?",
                (update_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError("DreamstateUpdate", update_id)
        return _row_to_update(row)

    def get_updates(self, persona_id: str, limit: int = 10) -> list[DreamstateUpdate]:
        """Updates de una persona, del mas reciente al mas viejo."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM dreamstate_updates WHERE persona_id = ? "
                "ORDER BY timestamp DESC LIMIT ?",
                (persona_id, limit),
            ).fetchall()
        return [_row_to_update(row) for row in rows]

    def get_recent_updates(self, limit: int = 5) -> list[DreamstateUpdate]:
        """Updates de cualquier persona, del mas reciente al mas viejo."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM dreamstate_updates "
                "ORDER BY timestamp DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_row_to_update(row) for row in rows]
