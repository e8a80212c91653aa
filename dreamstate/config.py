"""
config.py — Carga y gestiona la configuracion de dreamstate.

Se encarga de:
1. Cargar config.yaml (limites de awakening, dreamstate, busqueda)
2. Cargar .env (rutas locales, overrides)
3. Resolver variables de entorno ${VAR} en los valores de config
4. Convertir cada seccion a su dataclass

Uso:
    from dreamstate.config import load_config
    config = load_config()
    print(config.storage.db_path)  # "data/dreamstate.db"
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


# ============================================================
# Dataclasses de configuracion
# ============================================================

@dataclass
class StorageConfig:
    """Ubicacion de la base de datos SQLite."""
    db_path: str = "data/dreamstate.db"


@dataclass
class AwakeningConfig:
    """Cuanto contexto se carga al despertar."""
    recent_memories_limit: int = 5
    important_memories_threshold: int = 8
    important_memories_limit: int = 5
    recent_updates_limit: int = 3
    agent_name: str = "an AI assistant"


@dataclass
class DreamstateConfig:
    """Parametros del proceso de evolucion al dormir."""
    recent_memories_limit: int = 10


@dataclass
class ProcessorConfig:
    """Parametros del analizador de conversaciones."""
    max_summary_length: int = 500


@dataclass
class ConversationConfig:
    """Participantes por defecto de cada conversacion."""
    participants: list[str] = field(default_factory=lambda: [
        "user", "assistant",
    ])


@dataclass
class SearchConfig:
    """Limites de busqueda de memorias."""
    limit: int = 5


@dataclass
class AppConfig:
    """Configuracion completa."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    awakening: AwakeningConfig = field(default_factory=AwakeningConfig)
    dreamstate: DreamstateConfig = field(default_factory=DreamstateConfig)
    processor: ProcessorConfig = field(default_factory=ProcessorConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    search: SearchConfig = field(default_factory=SearchConfig)


# ============================================================
# Funciones de carga
# ============================================================

def _resolve_env_vars(value: str) -> str:
    """
    Resuelve variables de entorno en un string.

    Ejemplo:
        "${HOME}/.dreamstate/db.sqlite" -> "/home/user/.dreamstate/db.sqlite"

    Variables inexistentes se dejan tal cual.
    """
    patron = re.compile(r"\$\{(\w+)\}")

    def reemplazar(match: re.Match) -> str:
        return os.environ.get(match.group(1), match.group(0))

    return patron.sub(reemplazar, value)


def _resolve_env_recursive(data: Any) -> Any:
    """Resuelve ${VARIABLE} recursivamente en dicts y listas del YAML."""
    if isinstance(data, str):
        return _resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_recursive(item) for item in data]
    return data


def _dict_to_dataclass(data: dict, cls: type) -> Any:
    """Convierte un diccionario a una dataclass, ignorando keys desconocidas."""
    campos_validos = {f.name for f in cls.__dataclass_fields__.values()}
    datos_filtrados = {k: v for k, v in data.items() if k in campos_validos}
    return cls(**datos_filtrados)


def _find_config_dir() -> Path:
    """Busca hacia arriba desde cwd el directorio que contiene config.yaml."""
    current = Path.cwd()
    for parent in [current] + list(current.parents):
        if (parent / "config.yaml").exists():
            return parent
    return current


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Carga la configuracion completa.

    Pasos:
    1. Carga .env
    2. Lee config.yaml (si no existe, defaults)
    3. Resuelve ${VARIABLES}
    4. Convierte cada seccion a su dataclass
    5. Aplica DREAMSTATE_DB_PATH si esta definida

    Args:
        config_path: Ruta al config.yaml. Si es None, busca automaticamente.

    Returns:
        AppConfig lista para usar.
    """
    proyecto_dir = _find_config_dir()
    env_path = proyecto_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = proyecto_dir / "config.yaml"

    raw_config: dict = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}

    config_resuelto = _resolve_env_recursive(raw_config)

    app_config = AppConfig(
        storage=_dict_to_dataclass(
            config_resuelto.get("storage", {}), StorageConfig
        ),
        awakening=_dict_to_dataclass(
            config_resuelto.get("awakening", {}), AwakeningConfig
        ),
        dreamstate=_dict_to_dataclass(
            config_resuelto.get("dreamstate", {}), DreamstateConfig
        ),
        processor=_dict_to_dataclass(
            config_resuelto.get("processor", {}), ProcessorConfig
        ),
        conversation=_dict_to_dataclass(
            config_resuelto.get("conversation", {}), ConversationConfig
        ),
        search=_dict_to_dataclass(
            config_resuelto.get("search", {}), SearchConfig
        ),
    )

    db_override = os.environ.get("DREAMSTATE_DB_PATH")
    if db_override:
        app_config.storage.db_path = db_override

    return app_config
