"""
test_evolver.py — Tests para el proceso de dreamstate.

Verifica:
- Sin memorias: update de auditoria sin cambios
- Reglas de traits/values/biografia y sus topes
- Cadena consistente entre updates consecutivos
- Validaciones y estrategia reemplazable
"""

from __future__ import annotations

import pytest

from dreamstate.core.database import Database
from dreamstate.core.evolver import (
    EvolutionStrategy,
    HeuristicEvolution,
    PersonaChanges,
    PersonaEvolver,
    top_tags,
)
from dreamstate.core.models import Memory, Persona
from dreamstate.core.persona import PersonaStore
from dreamstate.errors import ValidationError


@pytest.fixture
def store(tmp_path):
    return PersonaStore(Database(tmp_path / "test_evolver.db"))


@pytest.fixture
def evolver(store):
    return PersonaEvolver(store)


@pytest.fixture
def persona(store):
    return store.ensure_exists()


class TestNoMemories:
    def test_audit_record_without_changes(self, evolver, persona, store):
        before = persona.snapshot()
        update = evolver.evolve_dreamstate(persona, [])

        assert update.description == "No changes made due to lack of new experiences"
        assert update.justification == "No recent memories to process"
        assert update.previous_state == update.new_state == before
        assert not update.has_changes
        assert store.get_update(update.update_id).persona_id == persona.persona_id

    def test_none_persona_rejected(self, evolver):
        with pytest.raises(ValidationError):
            evolver.evolve_dreamstate(None, [])


class TestRules:
    def test_conscientiousness_plus_005(self, evolver, persona, store):
        """Una memoria de importancia 9 sube conscientiousness 0.8 -> 0.85."""
        memory = Memory(summary="Solved a hard bug", importance=9, tags=["user"])
        update = evolver.evolve_dreamstate(persona, [memory])

        assert persona.traits["conscientiousness"] == pytest.approx(0.85)
        assert store.get(persona.persona_id).traits["conscientiousness"] == pytest.approx(0.85)
        assert update.diff()["traits"]["conscientiousness"]["previous"] == 0.8
        assert "including 1 high-importance experiences" in update.justification

    def test_conscientiousness_not_raised_at_ceiling(self, evolver, persona):
        persona.traits["conscientiousness"] = 0.92
        evolver.evolve_dreamstate(persona, [Memory(summary="x", importance=10)])
        assert persona.traits["conscientiousness"] == 0.92

    def test_biography_appends_first_high_summary(self, evolver, persona):
        original = persona.biography
        memories = [
            Memory(summary="Low one", importance=3),
            Memory(summary="Helped Build A Parser", importance=8),
            Memory(summary="Second High", importance=9),
        ]
        evolver.evolve_dreamstate(persona, memories)
        assert persona.biography == f"{original} Recently, I helped build a parser"

    def test_error_tags_raise_neuroticism(self, evolver, persona):
        memories = [Memory(summary="x", importance=5, tags=["error"]) for _ in range(2)]
        update = evolver.evolve_dreamstate(persona, memories)

        assert persona.traits["neuroticism"] == pytest.approx(0.43)
        assert "conscientiousness" not in update.diff()["traits"]
        assert update.diff()["biography"] is None
        assert update.justification == "Based on 2 recent memories"

    def test_neuroticism_capped(self, evolver, persona):
        persona.traits["neuroticism"] = 0.79
        evolver.evolve_dreamstate(persona, [Memory(summary="x", tags=["problem"])])
        assert persona.traits["neuroticism"] == 0.8

    def test_help_tags_raise_agreeableness_and_helpfulness(self, evolver, persona):
        evolver.evolve_dreamstate(persona, [Memory(summary="x", tags=["help"])])
        assert persona.traits["agreeableness"] == pytest.approx(0.77)
        assert persona.values["helpfulness"] == pytest.approx(0.86)

    def test_missing_axes_are_not_created(self, evolver, store):
        """Una persona sin el eje no lo gana por la regla."""
        persona = store.save(Persona(biography="Bio."))
        memories = [
            Memory(summary="Big win", importance=9, tags=["help", "error"]),
        ]
        update = evolver.evolve_dreamstate(persona, memories)

        assert persona.traits == {}
        assert persona.values == {}
        assert update.diff()["traits"] == {}
        assert persona.biography == "Bio. Recently, I big win"

    def test_helpfulness_skipped_when_missing(self, evolver, persona):
        del persona.values["helpfulness"]
        evolver.evolve_dreamstate(persona, [Memory(summary="x", tags=["help"])])
        assert persona.traits["agreeableness"] == pytest.approx(0.77)
        assert "helpfulness" not in persona.values

    def test_tags_outside_top_three_ignored(self, evolver, persona):
        memories = [
            Memory(summary="a", tags=["x", "y", "z"]),
            Memory(summary="b", tags=["x", "y", "z", "error"]),
        ]
        evolver.evolve_dreamstate(persona, memories)
        assert persona.traits["neuroticism"] == 0.4


class TestTopTags:
    def test_ties_by_first_seen(self):
        memories = [
            Memory(tags=["b", "a"]),
            Memory(tags=["c", "a"]),
            Memory(tags=["d"]),
        ]
        assert top_tags(memories) == ["a", "b", "c"]


class TestChain:
    def test_previous_equals_preceding_new(self, evolver, persona, store):
        first = evolver.evolve_dreamstate(persona, [Memory(summary="Big day", importance=9)])
        second = evolver.evolve_dreamstate(persona, [Memory(summary="x", tags=["help"])])

        assert second.previous_state == first.new_state
        history = store.get_updates(persona.persona_id)
        assert {u.update_id for u in history} == {first.update_id, second.update_id}


class TestStrategy:
    def test_custom_strategy(self, store, persona):
        class CalmDown(EvolutionStrategy):
            def evolve(self, persona, memories, **options):
                return PersonaChanges(
                    description="calm",
                    justification="test",
                    traits={"neuroticism": 0.1},
                    preferences={"tone": "gentle"},
                )

        update = PersonaEvolver(store, CalmDown()).evolve_dreamstate(persona, [])
        diff = update.diff()
        assert diff["traits"] == {"neuroticism": {"previous": 0.4, "new": 0.1}}
        assert diff["preferences"] == {"tone": {"previous": None, "new": "gentle"}}

    def test_heuristic_is_pure(self, persona):
        before = persona.snapshot()
        HeuristicEvolution().evolve(persona, [Memory(summary="x", importance=9)])
        assert persona.snapshot() == before
