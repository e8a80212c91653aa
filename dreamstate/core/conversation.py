"""
conversation.py — Registro persistente de conversaciones.

Cada conversacion es una fila en conversations (metadata + raw_text)
y N filas en messages (append-only, ordenadas por position).

Uso:
    from dreamstate.core.conversation import ConversationLog
    log = ConversationLog(db)
    conversation = log.start(["user", "assistant"])
    log.append(conversation, "user", "Hola")
"""

from __future__ import annotations

import sqlite3

from dreamstate.core.database import Database, decode_json, encode_json
from dreamstate.core.models import Conversation, Message, from_iso, to_iso
from dreamstate.errors import NotFoundError, ValidationError
from dreamstate.utils.logger import get_logger

logger = get_logger("dreamstate.core.conversation")


class ConversationLog:
    """
    Persiste conversaciones y sus mensajes.

    Args:
        db: Database compartida.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def start(
        self,
        participants: list[str],
        context: str = "",
    ) -> Conversation:
        """Crea y persiste una conversacion abierta."""
        conversation = Conversation(participants=participants, context=context)
        self.save(conversation)
        logger.info(f"Conversacion iniciada: {conversation.conversation_id[:8]}...")
        return conversation

    def append(self, conversation: Conversation, role: str, content: str) -> Message:
        """
        Agrega un mensaje a una conversacion abierta y la persiste.

        Raises:
            ValidationError: Si falta role/content o la conversacion ya cerro.
        """
        if not role:
            raise ValidationError("role es requerido")
        if not content:
            raise ValidationError("content es requerido")
        if not conversation.is_open:
            raise ValidationError(
                f"La conversacion {conversation.conversation_id} ya esta cerrada"
            )
        message = conversation.add_message(role, content)
        self.save(conversation)
        return message

    def close(self, conversation: Conversation) -> Conversation:
        """Marca end_time y persiste."""
        conversation.end()
        self.save(conversation)
        logger.info(f"Conversacion cerrada: {conversation.conversation_id[:8]}...")
        return conversation

    def save(self, conversation: Conversation) -> Conversation:
        """
        Upsert de la conversacion + insercion de mensajes nuevos.

        Los mensajes ya guardados no se tocan (position es unica por
        conversacion), asi que save() es idempotente.
        """
        with self._db.connect() as conn:
            conn.execute(
                "INSERT INTO conversations "
                "(conversation_id, start_time, end_time, participants, raw_text, context) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(conversation_id) DO UPDATE SET "
                "end_time = excluded.end_time, "
                "participants = excluded.participants, "
                "raw_text = excluded.raw_text, "
                "context = excluded.context",
                (
                    conversation.conversation_id,
                    to_iso(conversation.start_time),
                    to_iso(conversation.end_time),
                    encode_json(conversation.participants),
                    conversation.raw_text,
                    conversation.context,
                ),
            )
            conn.executemany(
                "INSERT OR IGNORE INTO messages "
                "(conversation_id, position, role, content, timestamp) "
                "VALUES (?, ?, ?, ?, ?)",
                [
                    (
                        conversation.conversation_id,
                        position,
                        message.role,
                        message.content,
                        to_iso(message.timestamp),
                    )
                    for position, message in enumerate(conversation.messages)
                ],
            )
        return conversation

    def get(self, conversation_id: str) -> Conversation:
        """
        Carga una conversacion con todos sus mensajes.

        Raises:
            NotFoundError: Si no existe.
        """
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()
            if row is None:
                raise NotFoundError("Conversation", conversation_id)
            messages = conn.execute(
                "SELECT role, content, timestamp FROM messages "
                "WHERE conversation_id = ? ORDER BY position ASC",
                (conversation_id,),
            ).fetchall()
        return self._build(row, messages)

    def get_recent(self, limit: int = 5) -> list[Conversation]:
        """Conversaciones mas recientes (por start_time), con mensajes."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT conversation_id FROM conversations "
                "ORDER BY start_time DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self.get(row["conversation_id"]) for row in rows]

    def get_open(self) -> list[Conversation]:
        """Conversaciones sin end_time (normalmente cero o una)."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT conversation_id FROM conversations "
                "WHERE end_time IS NULL ORDER BY start_time DESC"
            ).fetchall()
        return [self.get(row["conversation_id"]) for row in rows]

    @staticmethod
    def _build(row: sqlite3.Row, messages: list[sqlite3.Row]) -> Conversation:
        return Conversation(
            conversation_id=row["conversation_id"],
            start_time=from_iso(row["start_time"]),
            end_time=from_iso(row["end_time"]),
            participants=decode_json(row["participants"], []),
            context=row["context"] or "",
            messages=[
                Message(
                    role=m["role"],
                    content=m["content"],
                    timestamp=from_iso(m["timestamp"]),
                )
                for m in messages
            ],
        )
