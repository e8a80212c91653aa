"""
__main__.py — Permite ejecutar dreamstate como modulo.

    python -m dreamstate session
"""

from dreamstate.cli import main

if __name__ == "__main__":
    main()
