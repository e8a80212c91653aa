"""
logger.py — Logging para dreamstate usando Rich + archivo.

Dual output:
- Rich console: colores para uso interactivo (CLI, sesiones)
- Archivo rotativo: logs/dreamstate.log para debugging post-mortem

Uso:
    from dreamstate.utils.logger import get_logger, console
    logger = get_logger("dreamstate.core.lifecycle")
    logger.info("Despertando...")
    logger.success("Memoria creada")
    logger.warning("No hay conversacion activa")
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.theme import Theme

# En pytest no se escriben archivos de log
_in_pytest = "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ

dreamstate_theme = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "dream": "bold rgb(147,112,219)",
})

# Consola global, compartida con el CLI
console = Console(theme=dreamstate_theme)

_file_logger: logging.Logger | None = None


def _setup_file_logger() -> logging.Logger:
    """Configura el logger de archivo con rotacion."""
    global _file_logger
    if _file_logger is not None:
        return _file_logger

    if _in_pytest:
        _file_logger = logging.getLogger("dreamstate.null")
        _file_logger.addHandler(logging.NullHandler())
        return _file_logger

    log_dir = Path(os.environ.get("DREAMSTATE_LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    _file_logger = logging.getLogger("dreamstate.file")
    _file_logger.setLevel(logging.DEBUG)

    # Evitar handlers duplicados
    if not _file_logger.handlers:
        handler = RotatingFileHandler(
            log_dir / "dreamstate.log",
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=5,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        _file_logger.addHandler(handler)

    return _file_logger


class DreamstateLogger:
    """
    Logger con salida Rich + archivo.

    Cada modulo crea su propio logger con un nombre para
    identificar de donde viene cada mensaje.

    Args:
        name: Nombre del modulo (ej: "dreamstate.core.memory")
    """

    def __init__(self, name: str):
        self._name = name
        self._file = _setup_file_logger()

    def info(self, message: str) -> None:
        """Mensaje informativo (cyan)."""
        console.print(f"[info]i  {message}[/info]")
        self._file.info(f"[{self._name}] {message}")

    def success(self, message: str) -> None:
        """Mensaje de exito (verde)."""
        console.print(f"[success][OK] {message}[/success]")
        self._file.info(f"[{self._name}] OK: {message}")

    def warning(self, message: str) -> None:
        """Mensaje de advertencia (amarillo)."""
        console.print(f"[warning][!] {message}[/warning]")
        self._file.warning(f"[{self._name}] {message}")

    def error(self, message: str) -> None:
        """Mensaje de error (rojo)."""
        console.print(f"[error][X] {message}[/error]")
        self._file.error(f"[{self._name}] {message}")

    def dream(self, message: str) -> None:
        """Mensaje del proceso de dreamstate (violeta)."""
        console.print(f"[dream][zzz] {message}[/dream]")
        self._file.info(f"[{self._name}] [dreamstate] {message}")


def get_logger(name: str = "dreamstate") -> DreamstateLogger:
    """
    Obtiene un logger para el modulo especificado.

    Ejemplo:
        logger = get_logger("dreamstate.core.evolver")
        logger.dream("Evolucionando persona...")
    """
    return DreamstateLogger(name)
