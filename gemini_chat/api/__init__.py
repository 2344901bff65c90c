"""FastAPI host for the chat page.

Endpoints:
    - GET /health: Service health status
    - GET /api/models: Selectable model catalog

The NiceGUI page is mounted onto this app in ``gemini_chat.main``.
"""

from gemini_chat.api.app import app, create_app

__all__ = ["app", "create_app"]
