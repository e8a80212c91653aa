"""
lifecycle.py — El ciclo de vida: Awaken -> Converse -> Sleep/Dreamstate.

Estados:
    Asleep (inicial) <-> Awake, con un sub-estado ortogonal
    ConversationOpen (a lo mas una conversacion abierta).

Cada instancia es una sesion independiente (sin singletons globales).
Las operaciones que mutan estado se serializan con un RLock por
instancia; sleep() llama end_conversation() dentro del mismo lock.

Uso:
    from dreamstate.core.lifecycle import LifecycleController
    controller = LifecycleController()
    controller.initialize()
    controller.awaken()
    controller.record_message("user", "Hola")
    controller.sleep()
"""

from __future__ import annotations

import threading
from typing import Any

from dreamstate.config import AppConfig, load_config
from dreamstate.core.awakening import AwakeningAssembler, AwakeningContext
from dreamstate.core.conversation import ConversationLog
from dreamstate.core.database import Database
from dreamstate.core.evolver import PersonaEvolver
from dreamstate.core.memory import MemoryStore
from dreamstate.core.models import (
    Conversation,
    DreamstateUpdate,
    Memory,
    Persona,
    to_iso,
    utcnow,
)
from dreamstate.core.persona import PersonaStore
from dreamstate.core.processor import HeuristicAnalyzer, MemoryProcessor
from dreamstate.errors import StateError, ValidationError
from dreamstate.utils.logger import get_logger

logger = get_logger("dreamstate.core.lifecycle")


class LifecycleController:
    """
    Orquesta persona, conversaciones, memorias y dreamstate.

    Args:
        config: Configuracion (auto-carga si None).
        db: Database compartida (auto-crea desde config si None).
        processor: MemoryProcessor (default: heuristico).
        evolver: PersonaEvolver (default: heuristico).
        assembler: AwakeningAssembler (default: agent_name de config).
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        db: Database | None = None,
        processor: MemoryProcessor | None = None,
        evolver: PersonaEvolver | None = None,
        assembler: AwakeningAssembler | None = None,
    ) -> None:
        self._config = config or load_config()
        self._db = db or Database(self._config.storage.db_path)

        self.personas = PersonaStore(self._db)
        self.conversations = ConversationLog(self._db)
        self.memories = MemoryStore(self._db)

        self._processor = processor or MemoryProcessor(
            self.memories,
            HeuristicAnalyzer(self._config.processor.max_summary_length),
        )
        self._evolver = evolver or PersonaEvolver(self.personas)
        self._assembler = assembler or AwakeningAssembler(
            agent_name=self._config.awakening.agent_name,
        )

        self._lock = threading.RLock()
        self._persona: Persona | None = None
        self._conversation: Conversation | None = None
        self._context: AwakeningContext | None = None
        self._awake = False

    # ================================================================
    # Estado
    # ================================================================

    @property
    def is_awake(self) -> bool:
        return self._awake

    @property
    def has_active_conversation(self) -> bool:
        return self._conversation is not None

    @property
    def current_conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def awakening_context(self) -> AwakeningContext | None:
        return self._context

    def get_status(self) -> dict[str, Any]:
        return {
            "is_awake": self._awake,
            "has_active_conversation": self._conversation is not None,
            "persona_id": self._persona.persona_id if self._persona else None,
            "conversation_id": (
                self._conversation.conversation_id if self._conversation else None
            ),
            "last_updated": to_iso(utcnow()),
        }

    # ================================================================
    # Transiciones
    # ================================================================

    def initialize(self) -> LifecycleController:
        """
        Asegura que exista una persona. No cambia de estado.

        Las conversaciones que quedaron abiertas en la base (por ejemplo,
        tras un crash) se cierran y se convierten en memoria.
        """
        with self._lock:
            self._persona = self.personas.ensure_exists()
            self._recover_open_conversations()
        logger.info(f"Inicializado con persona {self._persona.persona_id[:8]}...")
        return self

    def _recover_open_conversations(self) -> None:
        active_id = self._conversation.conversation_id if self._conversation else None
        for orphan in self.conversations.get_open():
            if orphan.conversation_id == active_id:
                continue
            logger.warning(
                f"Cerrando conversacion huerfana {orphan.conversation_id[:8]}..."
            )
            self.conversations.close(orphan)
            self._processor.process_conversation(orphan)

    def awaken(self, **options: Any) -> AwakeningContext:
        """
        Asleep -> Awake: carga persona + memorias + updates y abre conversacion.

        Si ya esta despierto es un no-op: retorna el contexto existente.

        Args:
            recent_memories_limit: Memorias recientes a cargar.
            important_memories_threshold: Importance minima de las importantes.
            important_memories_limit: Memorias importantes a cargar.
            recent_updates_limit: Updates de persona a cargar.
        """
        with self._lock:
            if self._awake and self._context is not None:
                logger.warning("Ya estaba despierto; se reutiliza el contexto")
                return self._context

            defaults = self._config.awakening
            recent_limit = options.get(
                "recent_memories_limit", defaults.recent_memories_limit
            )
            threshold = options.get(
                "important_memories_threshold", defaults.important_memories_threshold
            )
            important_limit = options.get(
                "important_memories_limit", defaults.important_memories_limit
            )
            updates_limit = options.get(
                "recent_updates_limit", defaults.recent_updates_limit
            )

            self._persona = self.personas.ensure_exists()
            context = self._assembler.assemble(
                self._persona,
                self.memories.get_recent(recent_limit),
                self.memories.get_important(threshold, important_limit),
                self.personas.get_updates(self._persona.persona_id, updates_limit),
            )

            # Despierto solo si la conversacion inicial se pudo abrir
            self._awake = True
            try:
                self.start_conversation(self._config.conversation.participants)
            except Exception:
                self._awake = False
                raise
            self._context = context

            logger.success("Despierto y listo")
            return context

    def start_conversation(
        self,
        participants: list[str] | None = None,
        context: str = "",
    ) -> Conversation:
        """
        Abre una conversacion nueva (cierra la actual si existe).

        Raises:
            StateError: Si el sistema esta dormido.
        """
        with self._lock:
            if not self._awake:
                raise StateError("El sistema esta dormido. Llama awaken() primero")
            if self._conversation is not None:
                logger.warning("Cerrando la conversacion activa antes de abrir otra")
                self.end_conversation()

            self._conversation = self.conversations.start(
                participants or self._config.conversation.participants,
                context,
            )
            return self._conversation

    def record_message(self, role: str, content: str) -> Conversation:
        """
        Agrega un mensaje a la conversacion activa y la persiste.

        Raises:
            ValidationError: Si role o content estan vacios.
            StateError: Si esta dormido o no hay conversacion abierta.
        """
        if not role:
            raise ValidationError("role es requerido")
        if not content:
            raise ValidationError("content es requerido")

        with self._lock:
            if not self._awake:
                raise StateError("El sistema esta dormido. Llama awaken() primero")
            if self._conversation is None:
                raise StateError(
                    "No hay conversacion activa. Llama start_conversation() primero"
                )
            self.conversations.append(self._conversation, role, content)
            return self._conversation

    def end_conversation(self, **options: Any) -> Memory | None:
        """
        Cierra la conversacion activa y la convierte en memoria.

        Sin conversacion activa es un no-op que retorna None.

        Args:
            **options: Se pasan al MemoryProcessor (ej: max_length).
        """
        with self._lock:
            if self._conversation is None:
                logger.warning("No hay conversacion activa que cerrar")
                return None

            conversation = self._conversation
            # Fuera del controller aunque falle el guardado; initialize()
            # recupera las que quedaron abiertas en la base
            try:
                self.conversations.close(conversation)
            finally:
                self._conversation = None
            return self._processor.process_conversation(conversation, **options)

    def sleep(self, **options: Any) -> DreamstateUpdate | None:
        """
        Awake -> Asleep: cierra la conversacion activa y corre el dreamstate.

        Ya dormido es un no-op que retorna None.

        Args:
            recent_memories_limit: Memorias recientes a procesar.
            **options: El resto se pasa al PersonaEvolver.
        """
        with self._lock:
            if not self._awake:
                logger.warning("El sistema ya estaba dormido")
                return None

            if self._conversation is not None:
                self.end_conversation()

            limit = options.pop(
                "recent_memories_limit",
                self._config.dreamstate.recent_memories_limit,
            )
            if self._persona is None:
                self._persona = self.personas.ensure_exists()

            update = self._evolver.evolve_dreamstate(
                self._persona,
                self.memories.get_recent(limit),
                **options,
            )

            self._context = None
            self._awake = False
            logger.dream(f"Dormido. DreamstateUpdate {update.update_id[:8]}...")
            return update

    # ================================================================
    # Lecturas
    # ================================================================

    def get_awakening_prompt(self) -> str:
        """
        Raises:
            StateError: Si no esta despierto.
        """
        if not self._awake or self._context is None:
            raise StateError("El sistema no esta despierto. Llama awaken() primero")
        return self._assembler.generate_awakening_prompt(self._context)

    def search_memories(
        self,
        query: str = "",
        tags: list[str] | None = None,
        **options: Any,
    ) -> list[Memory]:
        """
        Busca memorias por tags; sin tags retorna las mas recientes.

        query se acepta pero todavia no se usa para busqueda de texto.
        """
        limit = options.get("limit", self._config.search.limit)
        if tags:
            return self.memories.search_by_tags(tags, limit)
        return self.memories.get_recent(limit)

    def get_persona(self) -> Persona | None:
        return self._persona or self.personas.load_current()

    def get_recent_memories(self, limit: int = 5) -> list[Memory]:
        return self.memories.get_recent(limit)

    def get_important_memories(self, threshold: int = 7, limit: int = 5) -> list[Memory]:
        return self.memories.get_important(threshold, limit)

    def get_recent_updates(self, limit: int = 3) -> list[DreamstateUpdate]:
        return self.personas.get_recent_updates(limit)
