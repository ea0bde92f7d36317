"""Database clients and connections.

Imports are intentionally NOT eagerly loaded here. Use explicit imports:
``from yourtranslator.db.postgres import async_session_factory``, etc.
"""
