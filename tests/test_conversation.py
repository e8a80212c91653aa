"""
test_conversation.py — Tests para ConversationLog.

Verifica:
- Inicio, mensajes y cierre persistidos
- Orden de mensajes y raw_text reconstruido
- Validaciones de role/content
"""

from __future__ import annotations

import pytest

from dreamstate.core.conversation import ConversationLog
from dreamstate.core.database import Database
from dreamstate.errors import NotFoundError, ValidationError


@pytest.fixture
def log(tmp_path):
    return ConversationLog(Database(tmp_path / "test_conversation.db"))


class TestConversationLog:
    def test_start_persists_open_conversation(self, log):
        conversation = log.start(["user", "assistant"], context="demo")
        loaded = log.get(conversation.conversation_id)

        assert loaded.is_open
        assert loaded.participants == ["user", "assistant"]
        assert loaded.context == "demo"
        assert loaded.messages == []

    def test_messages_ordered_and_raw_text(self, log):
        conversation = log.start(["user", "assistant"])
        log.append(conversation, "user", "Primero")
        log.append(conversation, "assistant", "Segundo")
        log.append(conversation, "user", "Tercero")

        loaded = log.get(conversation.conversation_id)
        assert [m.content for m in loaded.messages] == ["Primero", "Segundo", "Tercero"]
        assert loaded.raw_text == "user: Primero\nassistant: Segundo\nuser: Tercero\n"

    def test_save_is_idempotent(self, log):
        conversation = log.start(["user"])
        log.append(conversation, "user", "Hola")
        log.save(conversation)
        log.save(conversation)
        assert len(log.get(conversation.conversation_id).messages) == 1

    def test_close_sets_end_time(self, log):
        conversation = log.start(["user"])
        log.close(conversation)
        loaded = log.get(conversation.conversation_id)
        assert not loaded.is_open
        assert loaded.duration_minutes is not None

    def test_append_to_closed_rejected(self, log):
        conversation = log.close(log.start(["user"]))
        with pytest.raises(ValidationError):
            log.append(conversation, "user", "tarde")

    @pytest.mark.parametrize("role,content", [("", "hola"), ("user", "")])
    def test_missing_role_or_content(self, log, role, content):
        conversation = log.start(["user"])
        with pytest.raises(ValidationError):
            log.append(conversation, role, content)

    def test_get_missing_raises(self, log):
        with pytest.raises(NotFoundError):
            log.get("no-existe")

    def test_get_open_and_recent(self, log):
        closed = log.close(log.start(["user"]))
        open_one = log.start(["user"])

        assert [c.conversation_id for c in log.get_open()] == [open_one.conversation_id]
        recent_ids = [c.conversation_id for c in log.get_recent(limit=5)]
        assert set(recent_ids) == {closed.conversation_id, open_one.conversation_id}
