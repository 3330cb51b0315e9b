"""Database package — declarative Base and metadata conventions.

Engines and sessions live in infrastructure/database.py; this package only
defines what the models and migrations share.
"""
