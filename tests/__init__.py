"""Test package for Gemini Chat.

Structure:
    - unit/: Controller, stream, provider adapter and config tests
    - integration/: Host app endpoints and live Gemini calls

Unit tests drive the controller through a scripted in-process provider
(see conftest.py). Leverages pytest with pytest-check for soft assertions.
"""
