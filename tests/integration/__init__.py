"""Integration tests for components working together.

Coverage:
    - Host app endpoints with real HTTP requests
    - Full conversation turns against the live Gemini API (when configured)

Live tests require GEMINI_API_KEY and are skipped without it.
"""
