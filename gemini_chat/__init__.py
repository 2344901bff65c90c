"""Gemini Chat - browser chat client for the Gemini API.

Combines NiceGUI for the page, FastAPI as its host, google-genai for the
provider, and Pydantic for data validation.

Components:
    - chat: Conversation streaming core (controller, provider adapter, state)
    - models: Shared message and attachment schemas
    - api: Host application and read-only endpoints
    - ui: Chat page, settings panel and file uploads
"""

__version__ = "0.1.0"
