"""
test_cli.py — Tests para los comandos de terminal.

Cada test usa una DB temporal via --db; la salida de Rich se captura
con el CliRunner de click.
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from dreamstate.cli import _split_message, main
from dreamstate.config import AppConfig
from dreamstate.core.database import Database
from dreamstate.core.lifecycle import LifecycleController
from dreamstate.core.models import Memory


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test_cli.db")


@pytest.fixture
def runner():
    return CliRunner()


def seeded_controller(db_path: str) -> LifecycleController:
    return LifecycleController(config=AppConfig(), db=Database(db_path)).initialize()


class TestSplitMessage:
    def test_con_rol(self):
        assert _split_message("assistant: hola", "user") == ("assistant", "hola")

    def test_sin_rol(self):
        assert _split_message("hola mundo", "user") == ("user", "hola mundo")

    def test_dos_puntos_dentro_de_frase(self):
        line = "mira esto: funciona"
        assert _split_message(line, "user") == ("user", line)


class TestCommands:
    def test_init_crea_persona(self, runner, db_path):
        result = runner.invoke(main, ["--db", db_path, "init"])
        assert result.exit_code == 0
        assert seeded_controller(db_path).get_persona() is not None

    def test_persona(self, runner, db_path):
        result = runner.invoke(main, ["--db", db_path, "persona"])
        assert result.exit_code == 0
        assert "conscientiousness" in result.output

    def test_memories_vacio(self, runner, db_path):
        result = runner.invoke(main, ["--db", db_path, "memories"])
        assert result.exit_code == 0
        assert "No hay memorias" in result.output

    def test_memories_por_tag(self, runner, db_path):
        controller = seeded_controller(db_path)
        controller.memories.add(Memory(summary="Arreglamos el bug", importance=8, tags=["fix"]))
        controller.memories.add(Memory(summary="Charla casual", importance=2, tags=["chat"]))

        result = runner.invoke(main, ["--db", db_path, "memories", "--tag", "fix"])

        assert result.exit_code == 0
        assert "Arreglamos el bug" in result.output
        assert "Charla casual" not in result.output

    def test_memories_importantes(self, runner, db_path):
        controller = seeded_controller(db_path)
        controller.memories.add(Memory(summary="Lanzamiento", importance=9))
        controller.memories.add(Memory(summary="Saludo", importance=3))

        result = runner.invoke(main, ["--db", db_path, "memories", "--important"])

        assert result.exit_code == 0
        assert "Lanzamiento" in result.output
        assert "Saludo" not in result.output

    def test_updates_sin_historial(self, runner, db_path):
        result = runner.invoke(main, ["--db", db_path, "updates"])
        assert result.exit_code == 0
        assert "no ha evolucionado" in result.output

    def test_updates_con_historial(self, runner, db_path):
        controller = seeded_controller(db_path)
        controller.memories.add(Memory(summary="Gran dia", importance=9))
        controller.awaken()
        controller.sleep()

        result = runner.invoke(main, ["--db", db_path, "updates"])

        assert result.exit_code == 0
        assert "conscientiousness" in result.output

    def test_prompt(self, runner, db_path):
        result = runner.invoke(main, ["--db", db_path, "prompt"])
        assert result.exit_code == 0
        assert "Your core values:" in result.output
        assert "You have no recent memories." in result.output

    def test_config_show(self, runner, db_path):
        result = runner.invoke(main, ["--db", db_path, "config", "--show"])
        assert result.exit_code == 0
        assert "Participantes" in result.output

    def test_session_guarda_memoria(self, runner, db_path):
        result = runner.invoke(
            main,
            ["--db", db_path, "session"],
            input="hola, necesito help\nassistant: claro\n/sleep\n",
        )

        assert result.exit_code == 0
        controller = seeded_controller(db_path)
        memories = controller.get_recent_memories()
        assert len(memories) == 1
        assert "help" in memories[0].tags
        assert len(controller.get_recent_updates()) == 1
