"""
evolver.py — Proceso de dreamstate: evolucion de la persona.

Antes de dormir, las memorias recientes se convierten en cambios de
persona (traits, values, preferences, biography). Cada evolucion deja un
DreamstateUpdate con el estado anterior y el nuevo, incluso cuando no
hubo cambios.

La inferencia de cambios vive detras de EvolutionStrategy (un metodo);
HeuristicEvolution es la implementacion por defecto.

Uso:
    from dreamstate.core.evolver import PersonaEvolver
    evolver = PersonaEvolver(persona_store)
    update = evolver.evolve_dreamstate(persona, recent_memories)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from dreamstate.core.models import DreamstateUpdate, Memory, Persona
from dreamstate.core.persona import PersonaStore
from dreamstate.errors import ValidationError
from dreamstate.utils.logger import get_logger

logger = get_logger("dreamstate.core.evolver")

HIGH_IMPORTANCE = 8
TOP_TAGS = 3

NO_CHANGE_DESCRIPTION = "No changes made due to lack of new experiences"
NO_CHANGE_JUSTIFICATION = "No recent memories to process"
EVOLVED_DESCRIPTION = "Persona evolved based on recent experiences"


@dataclass
class PersonaChanges:
    """Deltas propuestos para una persona; biography None = sin cambio."""

    description: str
    justification: str
    traits: dict[str, float] = field(default_factory=dict)
    values: dict[str, float] = field(default_factory=dict)
    preferences: dict[str, str] = field(default_factory=dict)
    biography: str | None = None


class EvolutionStrategy(ABC):
    """Interfaz: (persona, memorias) -> PersonaChanges."""

    @abstractmethod
    def evolve(
        self,
        persona: Persona,
        memories: list[Memory],
        **options: Any,
    ) -> PersonaChanges:
        ...


def _raise_axis(current: float, step: float, ceiling: float) -> float:
    # Redondeo a 6 decimales para que 0.8 + 0.05 se guarde como 0.85
    return round(min(ceiling, current + step), 6)


def top_tags(memories: list[Memory], n: int = TOP_TAGS) -> list[str]:
    """Tags mas frecuentes; empates por orden de primera aparicion."""
    counts = Counter(tag for memory in memories for tag in memory.tags)
    return [tag for tag, _ in counts.most_common(n)]


class HeuristicEvolution(EvolutionStrategy):
    """
    Reglas deterministas (cada una se aplica de forma independiente):

    - Alguna memoria con importance >= 8 y conscientiousness < 0.9:
      +0.05 (tope 1.0)
    - Top tags incluyen "error" o "problem" y neuroticism < 0.8:
      +0.03 (tope 0.8)
    - Top tags incluyen "solution" o "help" y agreeableness < 0.95:
      +0.02 (tope 0.95) y helpfulness +0.01 (tope 1.0)
    - Alguna memoria importante: la biografia agrega una frase con el
      summary (en minusculas) de la primera de ellas

    Una regla no se aplica si la persona no tiene el eje que modifica.
    """

    def evolve(
        self,
        persona: Persona,
        memories: list[Memory],
        **options: Any,
    ) -> PersonaChanges:
        if not memories:
            return PersonaChanges(
                description=NO_CHANGE_DESCRIPTION,
                justification=NO_CHANGE_JUSTIFICATION,
            )

        high = [m for m in memories if m.importance >= HIGH_IMPORTANCE]
        frequent = top_tags(memories)

        justification = f"Based on {len(memories)} recent memories"
        if high:
            justification += f", including {len(high)} high-importance experiences"

        changes = PersonaChanges(
            description=EVOLVED_DESCRIPTION,
            justification=justification,
        )
        traits = persona.traits
        values = persona.values

        conscientiousness = traits.get("conscientiousness")
        if high and conscientiousness is not None and conscientiousness < 0.9:
            changes.traits["conscientiousness"] = _raise_axis(conscientiousness, 0.05, 1.0)

        neuroticism = traits.get("neuroticism")
        if (
            neuroticism is not None
            and neuroticism < 0.8
            and ("error" in frequent or "problem" in frequent)
        ):
            changes.traits["neuroticism"] = _raise_axis(neuroticism, 0.03, 0.8)

        agreeableness = traits.get("agreeableness")
        if (
            agreeableness is not None
            and agreeableness < 0.95
            and ("solution" in frequent or "help" in frequent)
        ):
            changes.traits["agreeableness"] = _raise_axis(agreeableness, 0.02, 0.95)
            helpfulness = values.get("helpfulness")
            if helpfulness is not None:
                changes.values["helpfulness"] = _raise_axis(helpfulness, 0.01, 1.0)

        if high:
            changes.biography = (
                f"{persona.biography} Recently, I {high[0].summary.lower()}"
            )

        return changes


class PersonaEvolver:
    """
    Aplica los cambios de la estrategia, guarda la persona y registra
    el DreamstateUpdate correspondiente.

    Args:
        persona_store: Store de persona + log de updates.
        strategy: Estrategia de evolucion (default: HeuristicEvolution).
    """

    def __init__(
        self,
        persona_store: PersonaStore,
        strategy: EvolutionStrategy | None = None,
    ) -> None:
        self._store = persona_store
        self._strategy = strategy or HeuristicEvolution()

    def evolve_dreamstate(
        self,
        persona: Persona | None,
        recent_memories: list[Memory] | None = None,
        **options: Any,
    ) -> DreamstateUpdate:
        """
        Evoluciona la persona a partir de las memorias recientes.

        Args:
            persona: Persona actual (se muta en el lugar).
            recent_memories: Memorias a procesar, en el orden del store.
            **options: Se pasan a la estrategia.

        Returns:
            El DreamstateUpdate persistido.

        Raises:
            ValidationError: Si persona es None.
        """
        if persona is None:
            raise ValidationError("persona no puede ser None")

        memories = list(recent_memories or [])
        previous_state = persona.snapshot()

        changes = self._strategy.evolve(persona, memories, **options)

        if changes.traits:
            persona.update_traits(changes.traits)
        if changes.values:
            persona.update_values(changes.values)
        if changes.preferences:
            persona.update_preferences(changes.preferences)
        if changes.biography is not None:
            persona.update_biography(changes.biography)

        self._store.save(persona)

        update = DreamstateUpdate(
            persona_id=persona.persona_id,
            description=changes.description,
            justification=changes.justification,
            previous_state=previous_state,
            new_state=persona.snapshot(),
        )
        self._store.add_update(update)

        logger.dream(f"{update.description} ({update.justification})")
        return update
