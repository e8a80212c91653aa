"""
errors.py — Jerarquia de excepciones de dreamstate.

- ValidationError: falta un argumento requerido (role, content,
  conversacion o persona nula).
- StateError: operacion invocada en un estado que no la permite
  (record_message dormido, prompt sin despertar).
- NotFoundError: busqueda por id sin resultado.
- StorageError: fallo de lectura/escritura en SQLite.

ValidationError y StateError no se reintentan: el caller debe cambiar
de estado primero. StorageError es fatal para la operacion en curso.
"""

from __future__ import annotations


class DreamstateError(Exception):
    """Base de todas las excepciones del paquete."""


class ValidationError(DreamstateError):
    """Argumento requerido ausente o invalido."""


class StateError(DreamstateError):
    """Operacion no permitida en el estado actual del ciclo de vida."""


class NotFoundError(DreamstateError):
    """No existe un registro con el id solicitado."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} no encontrado: {record_id}")
        self.kind = kind
        self.record_id = record_id


class StorageError(DreamstateError):
    """Fallo de la base de datos subyacente."""
