"""
models.py — Registros del ciclo de vida de memoria.

- Persona: perfil evolutivo (traits, values, preferences, biography)
- Conversation: dialogo en curso o cerrado, con mensajes ordenados
- Memory: destilado inmutable de una conversacion cerrada
- DreamstateUpdate: registro de auditoria de cada evolucion

Los stores (persona.py, conversation.py, memory.py) son los unicos
que tocan SQLite; estos objetos son datos puros.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

IMPORTANCE_MIN = 1
IMPORTANCE_MAX = 10

DEFAULT_TRAITS: dict[str, float] = {
    "openness": 0.7,
    "conscientiousness": 0.8,
    "extraversion": 0.6,
    "agreeableness": 0.75,
    "neuroticism": 0.4,
}

DEFAULT_VALUES: dict[str, float] = {
    "honesty": 0.9,
    "helpfulness": 0.85,
    "knowledge": 0.8,
    "efficiency": 0.75,
}

DEFAULT_PREFERENCES: dict[str, str] = {
    "communicationStyle": "clear and concise",
    "responseFormat": "structured",
    "interactionPreference": "friendly professional",
}

DEFAULT_BIOGRAPHY = (
    "I am an AI assistant designed to be helpful, harmless, and honest. "
    "I value clarity, accuracy, and providing useful information tailored "
    "to users' needs."
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    """Convierte a UTC; un datetime naive se asume ya en UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Serializa un datetime a ISO-8601 con microsegundos (orden lexicografico estable)."""
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")


def from_iso(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def clamp_importance(value: float) -> int:
    """Fuerza importance a un entero en [1, 10]."""
    return min(max(int(value), IMPORTANCE_MIN), IMPORTANCE_MAX)


def unique(items: list[str]) -> list[str]:
    """Elimina duplicados preservando el primer orden de aparicion."""
    return list(dict.fromkeys(items))


# ================================================================
# Persona
# ================================================================

@dataclass
class PersonaState:
    """Snapshot de los campos mutables de una persona."""

    traits: dict[str, float] = field(default_factory=dict)
    values: dict[str, float] = field(default_factory=dict)
    preferences: dict[str, str] = field(default_factory=dict)
    biography: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "traits": dict(self.traits),
            "values": dict(self.values),
            "preferences": dict(self.preferences),
            "biography": self.biography,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PersonaState:
        return cls(
            traits=dict(data.get("traits") or {}),
            values=dict(data.get("values") or {}),
            preferences=dict(data.get("preferences") or {}),
            biography=data.get("biography") or "",
        )


@dataclass
class Persona:
    """
    Perfil evolutivo del agente.

    Solo PersonaEvolver (y el bootstrap del default) lo muta. Cada
    update_* actualiza last_updated, que define cual es la persona actual.
    """

    persona_id: str = field(default_factory=new_id)
    traits: dict[str, float] = field(default_factory=dict)
    values: dict[str, float] = field(default_factory=dict)
    preferences: dict[str, str] = field(default_factory=dict)
    biography: str = ""
    last_updated: datetime = field(default_factory=utcnow)

    @classmethod
    def default(cls) -> Persona:
        return cls(
            traits=dict(DEFAULT_TRAITS),
            values=dict(DEFAULT_VALUES),
            preferences=dict(DEFAULT_PREFERENCES),
            biography=DEFAULT_BIOGRAPHY,
        )

    def snapshot(self) -> PersonaState:
        return PersonaState(
            traits=dict(self.traits),
            values=dict(self.values),
            preferences=dict(self.preferences),
            biography=self.biography,
        )

    def update_traits(self, changes: dict[str, float]) -> Persona:
        self.traits = {**self.traits, **changes}
        self.last_updated = utcnow()
        return self

    def update_values(self, changes: dict[str, float]) -> Persona:
        self.values = {**self.values, **changes}
        self.last_updated = utcnow()
        return self

    def update_preferences(self, changes: dict[str, str]) -> Persona:
        self.preferences = {**self.preferences, **changes}
        self.last_updated = utcnow()
        return self

    def update_biography(self, biography: str) -> Persona:
        self.biography = biography
        self.last_updated = utcnow()
        return self


# ================================================================
# Conversation
# ================================================================

@dataclass
class Message:
    role: str
    content: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class Conversation:
    """
    Dialogo registrado entre participantes.

    Los mensajes son append-only; raw_text se deriva de ellos y solo
    crece. end_time es None mientras la conversacion esta abierta.
    """

    conversation_id: str = field(default_factory=new_id)
    start_time: datetime = field(default_factory=utcnow)
    end_time: datetime | None = None
    participants: list[str] = field(default_factory=list)
    context: str = ""
    messages: list[Message] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.participants = unique(list(self.participants))

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def raw_text(self) -> str:
        return "".join(f"{m.role}: {m.content}\n" for m in self.messages)

    @property
    def duration_minutes(self) -> float | None:
        """Duracion en minutos, o None si sigue abierta."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() / 60

    def add_message(self, role: str, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def end(self, at: datetime | None = None) -> Conversation:
        self.end_time = at or utcnow()
        return self


# ================================================================
# Memory
# ================================================================

@dataclass
class Memory:
    """
    Destilado de una conversacion cerrada.

    importance siempre queda en [1, 10] y tags nunca repite entradas.
    Solo importance y tags se pueden enmendar despues de creada.
    """

    memory_id: str = field(default_factory=new_id)
    conversation_id: str | None = None
    summary: str = ""
    importance: int = 5
    timestamp: datetime = field(default_factory=utcnow)
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.importance = clamp_importance(self.importance)
        self.tags = unique(list(self.tags))

    def update_importance(self, importance: float) -> Memory:
        self.importance = clamp_importance(importance)
        return self

    def add_tags(self, tags: list[str] | str) -> Memory:
        if isinstance(tags, str):
            tags = [tags]
        self.tags = unique(self.tags + list(tags))
        return self

    def has_any_tag(self, tags: list[str]) -> bool:
        return any(tag in self.tags for tag in tags)


# ================================================================
# DreamstateUpdate
# ================================================================

def _diff_mapping(previous: dict, new: dict) -> dict[str, dict[str, Any]]:
    changes = {}
    for key, value in new.items():
        if key not in previous or previous[key] != value:
            changes[key] = {"previous": previous.get(key), "new": value}
    return changes


@dataclass
class DreamstateUpdate:
    """Registro append-only de una evolucion de persona."""

    persona_id: str
    description: str
    justification: str
    previous_state: PersonaState
    new_state: PersonaState
    update_id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)

    def diff(self) -> dict[str, Any]:
        """
        Compara previous_state vs new_state.

        Solo incluye entradas agregadas o cambiadas; biography es None
        si no cambio.
        """
        prev, new = self.previous_state, self.new_state
        biography = None
        if prev.biography != new.biography:
            biography = {"previous": prev.biography, "new": new.biography}
        return {
            "traits": _diff_mapping(prev.traits, new.traits),
            "values": _diff_mapping(prev.values, new.values),
            "preferences": _diff_mapping(prev.preferences, new.preferences),
            "biography": biography,
        }

    @property
    def has_changes(self) -> bool:
        diff = self.diff()
        return bool(
            diff["traits"] or diff["values"] or diff["preferences"]
            or diff["biography"]
        )
