"""HTTP layer — routers, request dependencies and the error envelope.

Invariants:
    - Handlers translate between wire schemas and orchestrator results only
    - Every error body has the {"error": {...}} shape from error_handlers.py
"""
