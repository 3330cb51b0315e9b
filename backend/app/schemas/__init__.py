"""Wire schemas for the chat API (pydantic v2, camelCase aliases)."""
