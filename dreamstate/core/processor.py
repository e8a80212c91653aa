"""
processor.py — Convierte conversaciones cerradas en memorias.

El analisis (summary, importance, tags) vive detras de
ConversationAnalyzer, una interfaz de un solo metodo. HeuristicAnalyzer
es la implementacion determinista por defecto; un analizador con LLM
puede reemplazarla sin tocar el ciclo de vida.

Uso:
    from dreamstate.core.processor import MemoryProcessor
    processor = MemoryProcessor(memory_store)
    memory = processor.process_conversation(conversation)
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from dreamstate.core.memory import MemoryStore
from dreamstate.core.models import (
    Conversation,
    Memory,
    as_utc,
    clamp_importance,
    unique,
)
from dreamstate.errors import ValidationError
from dreamstate.utils.logger import get_logger

logger = get_logger("dreamstate.core.processor")

DEFAULT_MAX_SUMMARY_LENGTH = 500
ELLIPSIS = "..."
BASE_IMPORTANCE = 5
LONG_TRANSCRIPT_CHARS = 1000

KEYWORD_VOCABULARY = (
    "help", "question", "problem", "solution", "error", "fix", "learn",
    "code", "program", "software", "data", "api", "file", "system",
    "request", "information", "explain", "understand", "create", "build",
)


@dataclass
class Analysis:
    """Resultado de analizar una conversacion."""

    summary: str
    importance: int
    tags: list[str] = field(default_factory=list)


class ConversationAnalyzer(ABC):
    """Interfaz: conversacion -> (summary, importance, tags)."""

    @abstractmethod
    def analyze(self, conversation: Conversation, **options: Any) -> Analysis:
        ...


class HeuristicAnalyzer(ConversationAnalyzer):
    """
    Analizador determinista.

    - Summary: primeros max_length caracteres del transcript, cortando en
      el ultimo espacio y agregando "..." si se trunco. Sin transcript se
      arma desde participantes y duracion.
    - Importance: 5, +min(2, minutos // 10), +1 con mas de 2 participantes,
      +1 con transcript > 1000 caracteres. Siempre en [1, 10].
    - Tags: participantes + fecha de inicio (YYYY-MM-DD) + palabras clave
      del vocabulario encontradas en el summary.

    Args:
        max_summary_length: Longitud maxima del summary.
    """

    def __init__(self, max_summary_length: int = DEFAULT_MAX_SUMMARY_LENGTH) -> None:
        self._max_summary_length = max_summary_length

    def analyze(self, conversation: Conversation, **options: Any) -> Analysis:
        max_length = options.get("max_length") or self._max_summary_length
        summary = self.summarize(conversation, max_length)
        return Analysis(
            summary=summary,
            importance=self.score(conversation),
            tags=self.tag(conversation, summary),
        )

    @staticmethod
    def summarize(conversation: Conversation, max_length: int) -> str:
        text = conversation.raw_text
        if text:
            if len(text) <= max_length:
                return text
            cut = text[:max_length]
            boundary = max(cut.rfind(" "), cut.rfind("\n"), cut.rfind("\t"))
            if boundary > 0:
                cut = cut[:boundary]
            return cut + ELLIPSIS

        summary = f"Conversation with {', '.join(conversation.participants)}"
        duration = conversation.duration_minutes
        if duration is not None:
            summary += f" lasting {duration:.1f} minutes"
        return summary

    @staticmethod
    def score(conversation: Conversation) -> int:
        importance = BASE_IMPORTANCE

        duration = conversation.duration_minutes
        if duration is not None:
            importance += min(2, math.floor(duration / 10))

        if len(conversation.participants) > 2:
            importance += 1

        if len(conversation.raw_text) > LONG_TRANSCRIPT_CHARS:
            importance += 1

        return clamp_importance(importance)

    @staticmethod
    def tag(conversation: Conversation, summary: str) -> list[str]:
        tags = list(conversation.participants)
        # Fecha del inicio en UTC, no en la zona del caller
        tags.append(as_utc(conversation.start_time).date().isoformat())

        summary_lower = summary.lower()
        tags.extend(k for k in KEYWORD_VOCABULARY if k in summary_lower)
        return unique(tags)


class MemoryProcessor:
    """
    Deriva y persiste una Memory a partir de una conversacion cerrada.

    Args:
        memory_store: Donde se guardan las memorias.
        analyzer: Analizador a usar (default: HeuristicAnalyzer).
    """

    def __init__(
        self,
        memory_store: MemoryStore,
        analyzer: ConversationAnalyzer | None = None,
    ) -> None:
        self._store = memory_store
        self._analyzer = analyzer or HeuristicAnalyzer()

    def process_conversation(
        self,
        conversation: Conversation | None,
        **options: Any,
    ) -> Memory:
        """
        Analiza la conversacion y guarda la memoria resultante.

        Args:
            conversation: Conversacion cerrada.
            **options: Se pasan al analizador (ej: max_length).

        Returns:
            La Memory persistida.

        Raises:
            ValidationError: Si la conversacion es None o sigue abierta.
        """
        if conversation is None:
            raise ValidationError("conversation no puede ser None")
        if conversation.is_open:
            raise ValidationError(
                f"La conversacion {conversation.conversation_id} sigue abierta"
            )

        analysis = self._analyzer.analyze(conversation, **options)
        memory = Memory(
            conversation_id=conversation.conversation_id,
            summary=analysis.summary,
            importance=analysis.importance,
            tags=analysis.tags,
        )
        return self._store.add(memory)
