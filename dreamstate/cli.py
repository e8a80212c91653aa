"""
cli.py — Punto de entrada de terminal de dreamstate.

Comandos disponibles:
    python -m dreamstate init                      -> Crea la DB y la persona default
    python -m dreamstate persona                   -> Muestra la persona actual
    python -m dreamstate memories                  -> Memorias recientes
    python -m dreamstate memories --important      -> Memorias importantes
    python -m dreamstate memories --tag error      -> Busqueda por tags
    python -m dreamstate updates                   -> Historial de dreamstate
    python -m dreamstate prompt                    -> Preview del prompt de despertar
    python -m dreamstate session                   -> Sesion interactiva completa
    python -m dreamstate config --show             -> Muestra configuracion

Uso desde codigo (testing):
    from click.testing import CliRunner
    from dreamstate.cli import main
    CliRunner().invoke(main, ["memories", "--limit", "3"])
"""

from __future__ import annotations

import sys

import click
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from dreamstate import __version__
from dreamstate.config import AppConfig, load_config
from dreamstate.core.awakening import AwakeningAssembler
from dreamstate.core.lifecycle import LifecycleController
from dreamstate.core.models import Memory
from dreamstate.errors import DreamstateError
from dreamstate.utils.logger import console, get_logger

logger = get_logger("dreamstate.cli")

SESSION_HELP = (
    "Escribe mensajes como [bold]rol: contenido[/bold] "
    "(sin rol se usa el primer participante).\n"
    "[bold]/end[/bold] cierra la conversacion, [bold]/new[/bold] abre otra, "
    "[bold]/sleep[/bold] duerme y sale."
)


@click.group()
@click.version_option(version=__version__, prog_name="dreamstate")
@click.option("--db", "db_path", default=None, help="Ruta a la base SQLite")
@click.pass_context
def main(ctx: click.Context, db_path: str | None):
    """Memoria de largo plazo y evolucion de persona."""
    config = load_config()
    if db_path:
        config.storage.db_path = db_path
    ctx.obj = config


def _controller(config: AppConfig) -> LifecycleController:
    return LifecycleController(config=config).initialize()


@main.command()
@click.pass_obj
def init(config: AppConfig):
    """Crea la base de datos y la persona default si no existe."""
    try:
        controller = _controller(config)
        persona = controller.get_persona()
        logger.success(f"Persona lista: {persona.persona_id}")
    except DreamstateError as e:
        logger.error(str(e))
        sys.exit(1)


@main.command()
@click.pass_obj
def persona(config: AppConfig):
    """Muestra traits, values, preferences y biografia de la persona."""
    try:
        current = _controller(config).get_persona()
    except DreamstateError as e:
        logger.error(str(e))
        sys.exit(1)

    tabla = Table(title=f"Persona {current.persona_id[:8]}")
    tabla.add_column("Eje", style="cyan")
    tabla.add_column("Valor", style="green")
    for name, value in current.traits.items():
        tabla.add_row(f"trait.{name}", f"{value:.2f}")
    for name, value in current.values.items():
        tabla.add_row(f"value.{name}", f"{value:.2f}")
    for name, value in current.preferences.items():
        tabla.add_row(f"pref.{name}", str(value))
    console.print(tabla)
    console.print(Panel(current.biography, title="Biografia"))


@main.command()
@click.option("--limit", "-n", default=None, type=int, help="Maximo de resultados")
@click.option("--important", is_flag=True, help="Solo memorias importantes")
@click.option("--threshold", default=None, type=int, help="Importance minima")
@click.option("--tag", "tags", multiple=True, help="Filtrar por tag (repetible)")
@click.pass_obj
def memories(
    config: AppConfig,
    limit: int | None,
    important: bool,
    threshold: int | None,
    tags: tuple[str, ...],
):
    """Lista memorias por recencia, importancia o tags."""
    limit = limit or config.search.limit
    try:
        controller = _controller(config)
        if important:
            results = controller.get_important_memories(
                threshold or config.awakening.important_memories_threshold,
                limit,
            )
        else:
            results = controller.search_memories("", list(tags), limit=limit)
    except DreamstateError as e:
        logger.error(str(e))
        sys.exit(1)

    _show_memories(results)


@main.command()
@click.option("--limit", "-n", default=5, type=int, help="Maximo de updates")
@click.pass_obj
def updates(config: AppConfig, limit: int):
    """Historial de evoluciones de la persona (dreamstate)."""
    try:
        history = _controller(config).get_recent_updates(limit)
    except DreamstateError as e:
        logger.error(str(e))
        sys.exit(1)

    if not history:
        logger.info("La persona no ha evolucionado todavia")
        return

    for update in history:
        diff = update.diff()
        lines = [f"[bold]{update.justification}[/bold]"]
        for section in ("traits", "values", "preferences"):
            for key, change in diff[section].items():
                lines.append(f"{section}.{key}: {change['previous']} -> {change['new']}")
        if diff["biography"]:
            lines.append("biography: actualizada")
        console.print(Panel(
            "\n".join(lines),
            title=f"{update.timestamp:%Y-%m-%d %H:%M} - {update.description}",
            border_style="rgb(147,112,219)",
        ))


@main.command()
@click.pass_obj
def prompt(config: AppConfig):
    """Preview del prompt de despertar (no abre conversacion)."""
    try:
        controller = _controller(config)
        current = controller.get_persona()
        awakening = config.awakening
        assembler = AwakeningAssembler(agent_name=awakening.agent_name)
        context = assembler.assemble(
            current,
            controller.get_recent_memories(awakening.recent_memories_limit),
            controller.get_important_memories(
                awakening.important_memories_threshold,
                awakening.important_memories_limit,
            ),
            controller.personas.get_updates(
                current.persona_id, awakening.recent_updates_limit
            ),
        )
    except DreamstateError as e:
        logger.error(str(e))
        sys.exit(1)

    console.print(assembler.generate_awakening_prompt(context))


@main.command()
@click.option("--show-prompt", is_flag=True, help="Imprime el prompt al despertar")
@click.pass_obj
def session(config: AppConfig, show_prompt: bool):
    """Sesion interactiva: awaken -> mensajes -> sleep."""
    try:
        controller = _controller(config)
        controller.awaken()
    except DreamstateError as e:
        logger.error(str(e))
        sys.exit(1)

    if show_prompt:
        console.print(controller.get_awakening_prompt())
    console.print(Panel(SESSION_HELP, title="Sesion", border_style="cyan"))

    default_role = config.conversation.participants[0]
    try:
        while True:
            line = Prompt.ask("[bold cyan]>[/bold cyan]").strip()
            if not line:
                continue
            if line == "/sleep":
                break
            if line == "/end":
                memory = controller.end_conversation()
                if memory:
                    _show_memories([memory])
                continue
            if line == "/new":
                controller.start_conversation()
                continue

            role, content = _split_message(line, default_role)
            try:
                controller.record_message(role, content)
            except DreamstateError as e:
                logger.warning(str(e))
    except (KeyboardInterrupt, EOFError):
        console.print()

    try:
        update = controller.sleep()
    except DreamstateError as e:
        logger.error(str(e))
        sys.exit(1)
    if update:
        logger.dream(f"{update.description}: {update.justification}")


@main.command()
@click.option("--show", is_flag=True, help="Muestra la configuracion actual")
@click.pass_obj
def config(cfg: AppConfig, show: bool):
    """Gestiona la configuracion."""
    if not show:
        return

    tabla = Table(title="Configuracion de dreamstate")
    tabla.add_column("Parametro", style="cyan")
    tabla.add_column("Valor", style="green")

    tabla.add_row("DB", cfg.storage.db_path)
    tabla.add_row("Recientes al despertar", str(cfg.awakening.recent_memories_limit))
    tabla.add_row("Umbral importantes", str(cfg.awakening.important_memories_threshold))
    tabla.add_row("Importantes al despertar", str(cfg.awakening.important_memories_limit))
    tabla.add_row("Updates al despertar", str(cfg.awakening.recent_updates_limit))
    tabla.add_row("Memorias para dreamstate", str(cfg.dreamstate.recent_memories_limit))
    tabla.add_row("Largo de summary", str(cfg.processor.max_summary_length))
    tabla.add_row("Participantes", ", ".join(cfg.conversation.participants))

    console.print(tabla)


# ============================================================
# Funciones auxiliares (privadas)
# ============================================================

def _split_message(line: str, default_role: str) -> tuple[str, str]:
    """'assistant: hola' -> ('assistant', 'hola'); sin prefijo usa default_role."""
    role, sep, content = line.partition(":")
    role = role.strip()
    if sep and role and " " not in role:
        return role, content.strip()
    return default_role, line


def _show_memories(results: list[Memory]) -> None:
    if not results:
        logger.info("No hay memorias")
        return

    tabla = Table(title="Memorias")
    tabla.add_column("Fecha", style="cyan")
    tabla.add_column("Imp.", justify="right", style="bold")
    tabla.add_column("Resumen")
    tabla.add_column("Tags", style="green")
    for m in results:
        summary = m.summary if len(m.summary) <= 80 else m.summary[:77] + "..."
        tabla.add_row(
            f"{m.timestamp:%Y-%m-%d %H:%M}",
            str(m.importance),
            summary.replace("\n", " "),
            ", ".join(m.tags),
        )
    console.print(tabla)


if __name__ == "__main__":
    main()
