"""
dreamstate — Memoria de largo plazo y evolucion de persona para agentes.

Este paquete contiene:
- core/   -> stores SQLite, procesador de memorias, evolver, ciclo de vida
- utils/  -> logging
- cli.py  -> comandos de terminal

Uso:
    python -m dreamstate init
    python -m dreamstate session
    python -m dreamstate memories --important
"""

__version__ = "1.0.0"
