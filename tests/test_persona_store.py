"""
test_persona_store.py — Tests para PersonaStore y el log de dreamstate.

Verifica:
- Persona default al no existir ninguna
- Round-trip de traits/"values"/preferences (JSON)
- Persona actual = la actualizada mas recientemente
- Log de updates append-only ligado a la persona
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from dreamstate.core.database import Database
from dreamstate.core.models import DreamstateUpdate, Persona, PersonaState
from dreamstate.core.persona import PersonaStore
from dreamstate.errors import NotFoundError, StorageError


@pytest.fixture
def store(tmp_path):
    return PersonaStore(Database(tmp_path / "test_persona.db"))


class TestPersona:
    def test_empty_store_has_no_current(self, store):
        assert store.load_current() is None

    def test_ensure_exists_creates_default_once(self, store):
        first = store.ensure_exists()
        second = store.ensure_exists()
        assert first.persona_id == second.persona_id
        assert second.traits["conscientiousness"] == 0.8

    def test_values_round_trip(self, store):
        """La columna "values" (palabra reservada) se guarda y se lee bien."""
        persona = Persona(
            traits={"openness": 0.33},
            values={"honesty": 0.91, "curiosity": 0.2},
            preferences={"tone": "warm"},
            biography="Soy una persona de prueba.",
        )
        store.save(persona)
        loaded = store.get(persona.persona_id)

        assert loaded.values == {"honesty": 0.91, "curiosity": 0.2}
        assert loaded.traits == {"openness": 0.33}
        assert loaded.preferences == {"tone": "warm"}
        assert loaded.biography == "Soy una persona de prueba."

    def test_get_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.get("no-existe")

    def test_current_is_most_recently_updated(self, store):
        old = Persona.default()
        new = Persona.default()
        new.last_updated = old.last_updated + timedelta(seconds=1)
        store.save(new)
        store.save(old)
        assert store.load_current().persona_id == new.persona_id

    def test_save_after_updates_keeps_history(self, store):
        """Re-guardar la persona no rompe los updates que la referencian."""
        persona = store.ensure_exists()
        store.add_update(_update(persona.persona_id))
        persona.update_traits({"openness": 0.9})
        store.save(persona)

        assert store.get(persona.persona_id).traits["openness"] == 0.9
        assert len(store.get_updates(persona.persona_id)) == 1


def _update(persona_id: str, description: str = "d") -> DreamstateUpdate:
    return DreamstateUpdate(
        persona_id=persona_id,
        description=description,
        justification="j",
        previous_state=PersonaState(traits={"openness": 0.7}, biography="a"),
        new_state=PersonaState(traits={"openness": 0.75}, biography="a"),
    )


class TestUpdates:
    def test_add_and_get(self, store):
        persona = store.ensure_exists()
        update = store.add_update(_update(persona.persona_id))
        loaded = store.get_update(update.update_id)

        assert loaded.previous_state == update.previous_state
        assert loaded.new_state == update.new_state
        assert loaded.diff()["traits"] == {"openness": {"previous": 0.7, "new": 0.75}}

    def test_get_missing_update_raises(self, store):
        with pytest.raises(NotFoundError):
            store.get_update("no-existe")

    def test_updates_desc_order(self, store):
        persona = store.ensure_exists()
        first = _update(persona.persona_id, "first")
        second = _update(persona.persona_id, "second")
        second.timestamp = first.timestamp + timedelta(seconds=1)
        store.add_update(first)
        store.add_update(second)

        assert [u.description for u in store.get_updates(persona.persona_id)] == [
            "second", "first",
        ]
        assert [u.description for u in store.get_recent_updates(limit=1)] == ["second"]

    def test_update_requires_existing_persona(self, store):
        with pytest.raises(StorageError):
            store.add_update(_update("no-existe"))

    def test_updates_are_append_only(self, store):
        """Un update con el mismo id no se puede reescribir."""
        persona = store.ensure_exists()
        update = store.add_update(_update(persona.persona_id))
        with pytest.raises(StorageError):
            store.add_update(update)
