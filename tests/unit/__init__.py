"""Unit tests for individual components in isolation.

Coverage:
    - chat/controller: Turn state machine, retry, cancellation, failures
    - chat/stream: Cancellation token and response stream
    - chat/provider: Gemini adapter with a mocked SDK client
    - chat/config, conversation, encoder, thinking

No network access. The SDK client is mocked where the adapter is tested.
"""
