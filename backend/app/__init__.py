"""Support chat backend: FastAPI surface over a rate-limited, cache-aside chat orchestrator."""
