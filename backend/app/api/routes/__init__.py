"""Routers: chat (message, history, rate-limit probe) and health probes."""
