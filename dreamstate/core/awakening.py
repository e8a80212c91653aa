"""
awakening.py — Ensamblador del contexto de despertar.

Combina:
1. Snapshot de la persona (traits, values, preferences, biography)
2. Memorias recientes
3. Memorias importantes
4. Updates recientes de la persona, cada uno con su diff
5. Hora de ensamblado

y lo renderiza como un prompt de texto para el agente.

Uso:
    from dreamstate.core.awakening import AwakeningAssembler
    assembler = AwakeningAssembler(agent_name="Aria")
    context = assembler.assemble(persona, recent, important, updates)
    prompt = assembler.generate_awakening_prompt(context)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dreamstate.core.models import (
    DreamstateUpdate,
    Memory,
    Persona,
    PersonaState,
    to_iso,
    utcnow,
)

PROMPT_TEMPLATE = """You are {agent_name} with the following traits:
{traits}

Your core values:
{values}

Your preferences:
{preferences}

Your biography:
{biography}

{recent}

{important}

{developments}

It is now {now}.
You are awakening and ready to assist.
"""

NO_RECENT = "You have no recent memories."
NO_IMPORTANT = "You have no significant memories."
NO_DEVELOPMENTS = "Your personality has been stable recently."


@dataclass
class UpdateDigest:
    """Resumen legible de un DreamstateUpdate."""

    update_id: str
    when: datetime
    description: str
    justification: str
    changes: dict[str, Any]


@dataclass
class AwakeningContext:
    """Todo lo que el agente necesita saber al despertar."""

    persona_id: str
    persona: PersonaState
    recent_memories: list[Memory] = field(default_factory=list)
    important_memories: list[Memory] = field(default_factory=list)
    recent_updates: list[UpdateDigest] = field(default_factory=list)
    awakening_time: datetime = field(default_factory=utcnow)


class AwakeningAssembler:
    """
    Construye AwakeningContext y su prompt. No toca la base de datos:
    recibe los datos ya cargados por el controller.

    Args:
        agent_name: Como se nombra al agente en el prompt.
    """

    def __init__(self, agent_name: str = "an AI assistant") -> None:
        self._agent_name = agent_name

    def assemble(
        self,
        persona: Persona,
        recent_memories: list[Memory],
        important_memories: list[Memory],
        recent_updates: list[DreamstateUpdate],
    ) -> AwakeningContext:
        return AwakeningContext(
            persona_id=persona.persona_id,
            persona=persona.snapshot(),
            recent_memories=list(recent_memories),
            important_memories=list(important_memories),
            recent_updates=[
                UpdateDigest(
                    update_id=u.update_id,
                    when=u.timestamp,
                    description=u.description,
                    justification=u.justification,
                    changes=u.diff(),
                )
                for u in recent_updates
            ],
        )

    def generate_awakening_prompt(self, context: AwakeningContext) -> str:
        persona = context.persona
        return PROMPT_TEMPLATE.format(
            agent_name=self._agent_name,
            traits=self._format_axes(persona.traits, capitalize=True),
            values=self._format_axes(persona.values),
            preferences=self._format_preferences(persona.preferences),
            biography=persona.biography or "(empty)",
            recent=self._format_memories(
                "Recent experiences:", context.recent_memories, NO_RECENT
            ),
            important=self._format_memories(
                "Important memories:", context.important_memories, NO_IMPORTANT
            ),
            developments=self._format_updates(context.recent_updates),
            now=to_iso(context.awakening_time),
        )

    # ================================================================
    # Secciones del prompt
    # ================================================================

    @staticmethod
    def _format_axes(axes: dict[str, float], capitalize: bool = False) -> str:
        if not axes:
            return "- (none)"
        lines = []
        for name, value in axes.items():
            label = name.capitalize() if capitalize else name
            lines.append(f"- {label}: {value:.2f}")
        return "\n".join(lines)

    @staticmethod
    def _format_preferences(preferences: dict[str, str]) -> str:
        if not preferences:
            return "- (none)"
        return "\n".join(f"- {k}: {v}" for k, v in preferences.items())

    @staticmethod
    def _format_memories(header: str, memories: list[Memory], empty: str) -> str:
        if not memories:
            return empty
        lines = [header]
        for m in memories:
            lines.append(f"- {m.summary} (Importance: {m.importance})")
        return "\n".join(lines)

    @staticmethod
    def _format_updates(updates: list[UpdateDigest]) -> str:
        if not updates:
            return NO_DEVELOPMENTS
        lines = ["Recent personality developments:"]
        for u in updates:
            lines.append(f"- {u.description}: {u.justification}")
        return "\n".join(lines)
