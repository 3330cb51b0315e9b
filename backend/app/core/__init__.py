"""Core — domain types, error hierarchy, prompt text and boundary protocols.

Invariants:
    - Imports nothing from services/, api/, infrastructure/ or db/
    - No IO: everything here is importable and testable without a database,
      Redis or provider credentials
"""
