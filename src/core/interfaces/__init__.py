"""Core interfaces/abstractions.

Protocols implemented by concrete adapters, so the core depends on
contracts instead of on SQLAlchemy or httpx.
"""
