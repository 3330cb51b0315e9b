"""Services Layer — rate limiting, session cache, resilient dispatch, orchestration.

Invariants:
    - Component services depend only on core/ protocols, never on concrete stores or SDKs
    - dispatcher_factory is the single module that names concrete providers
    - Every service is constructed explicitly and injected (no module singletons)

Design Decisions:
    - One file per component for locality
"""
