"""
core/ — El nucleo del ciclo de vida de memoria.

Modulos:
    models.py       -> Persona, Conversation, Memory, DreamstateUpdate
    database.py     -> Conexion SQLite + schema.sql
    persona.py      -> PersonaStore (persona + log de dreamstate)
    conversation.py -> ConversationLog
    memory.py       -> MemoryStore
    processor.py    -> MemoryProcessor + analizador heuristico
    evolver.py      -> PersonaEvolver + estrategia heuristica
    awakening.py    -> AwakeningAssembler (contexto + prompt)
    lifecycle.py    -> LifecycleController (Awaken -> Converse -> Sleep)
"""
