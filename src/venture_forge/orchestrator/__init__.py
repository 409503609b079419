"""Task orchestration for the idea-to-launch artifact pipeline.

Why not a task queue?
~~~~~~~~~~~~~~~~~~~~~
Every step is request-driven: a caller asks for one artifact of one startup
and waits for it. The interesting parts are the prerequisite graph between
artifacts, idempotent persistence of exactly one output field per task, and
failure isolation between steps. None of that needs a broker; a static
registry, an SQLite record store and an asyncio orchestrator cover it, while
the optional Prefect flow gives operators retries and run history on top.
"""
