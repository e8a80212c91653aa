"""
test_config.py — Tests para el modulo de configuracion.

Verificamos que:
1. La configuracion se carga correctamente desde config.yaml
2. Las variables de entorno se resuelven
3. Los valores por defecto funcionan cuando no hay archivo
4. DREAMSTATE_DB_PATH tiene prioridad sobre el YAML
"""

from unittest.mock import patch

import pytest

from dreamstate.config import (
    AppConfig,
    AwakeningConfig,
    load_config,
    _dict_to_dataclass,
    _resolve_env_vars,
    _resolve_env_recursive,
)


@pytest.fixture(autouse=True)
def sin_override(monkeypatch):
    monkeypatch.delenv("DREAMSTATE_DB_PATH", raising=False)


class TestResolveEnvVars:
    """Tests para la resolucion de variables de entorno."""

    def test_resuelve_variable_existente(self):
        """Debe reemplazar ${VAR} con el valor de la variable de entorno."""
        with patch.dict("os.environ", {"MI_VAR": "hola"}):
            assert _resolve_env_vars("${MI_VAR}/path") == "hola/path"

    def test_mantiene_variable_inexistente(self):
        """Si la variable no existe, debe mantener el placeholder."""
        assert _resolve_env_vars("${NO_EXISTE_DREAMSTATE}") == "${NO_EXISTE_DREAMSTATE}"

    def test_resuelve_multiples_variables(self):
        with patch.dict("os.environ", {"A": "1", "B": "2"}):
            assert _resolve_env_vars("${A}-${B}") == "1-2"


class TestResolveEnvRecursive:
    """Tests para la resolucion recursiva en estructuras de datos."""

    def test_resuelve_en_dict_anidado(self):
        with patch.dict("os.environ", {"PATH_VAR": "/mi/path"}):
            datos = {"nivel1": {"nivel2": "${PATH_VAR}"}}
            resultado = _resolve_env_recursive(datos)
            assert resultado["nivel1"]["nivel2"] == "/mi/path"

    def test_resuelve_en_lista(self):
        with patch.dict("os.environ", {"VAL": "ok"}):
            assert _resolve_env_recursive(["${VAL}", "fijo"]) == ["ok", "fijo"]

    def test_no_modifica_numeros(self):
        assert _resolve_env_recursive(42) == 42


class TestAppConfig:
    """Tests para la configuracion completa de la app."""

    def test_valores_por_defecto(self):
        config = AppConfig()
        assert config.storage.db_path == "data/dreamstate.db"
        assert config.awakening.recent_memories_limit == 5
        assert config.awakening.important_memories_threshold == 8
        assert config.awakening.recent_updates_limit == 3
        assert config.dreamstate.recent_memories_limit == 10
        assert config.processor.max_summary_length == 500
        assert config.conversation.participants == ["user", "assistant"]
        assert config.search.limit == 5

    def test_dict_to_dataclass_ignora_keys_desconocidas(self):
        awakening = _dict_to_dataclass(
            {"recent_memories_limit": 2, "no_existe": True}, AwakeningConfig
        )
        assert awakening.recent_memories_limit == 2
        assert awakening.agent_name == "an AI assistant"


class TestLoadConfig:
    """Tests para la funcion load_config."""

    def test_carga_sin_archivo(self, tmp_path):
        """Si no hay config.yaml, debe usar valores por defecto."""
        with patch("dreamstate.config._find_config_dir", return_value=tmp_path):
            config = load_config()
            assert isinstance(config, AppConfig)
            assert config.storage.db_path == "data/dreamstate.db"

    def test_carga_desde_yaml(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "storage:\n"
            "  db_path: ${DS_HOME}/mem.db\n"
            "awakening:\n"
            "  agent_name: Aria\n"
            "search:\n"
            "  limit: 3\n",
            encoding="utf-8",
        )
        with patch.dict("os.environ", {"DS_HOME": "/tmp/ds"}):
            config = load_config(config_file)

        assert config.storage.db_path == "/tmp/ds/mem.db"
        assert config.awakening.agent_name == "Aria"
        assert config.awakening.recent_memories_limit == 5
        assert config.search.limit == 3

    def test_yaml_vacio(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("", encoding="utf-8")
        assert load_config(config_file) == AppConfig()

    def test_override_db_path(self, tmp_path, monkeypatch):
        """DREAMSTATE_DB_PATH gana sobre el valor del YAML."""
        monkeypatch.setenv("DREAMSTATE_DB_PATH", str(tmp_path / "otro.db"))
        with patch("dreamstate.config._find_config_dir", return_value=tmp_path):
            config = load_config()
        assert config.storage.db_path == str(tmp_path / "otro.db")
