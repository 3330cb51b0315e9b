"""Infrastructure — adapters for Postgres, Redis, provider SDKs and logging.

Invariants:
    - Never imports from services/ or api/
    - SDK and driver exceptions are translated here (DatabaseError,
      GenerationError, StoreResult) and never reach the services raw
"""
