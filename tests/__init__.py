"""Test package for DocChat.

Unit tests cover the streaming engine, citation extraction, providers,
parsing, rendering and configuration in isolation. Integration tests
drive the FastAPI app end to end through httpx's ASGI transport.

Structure:
    - unit/: Individual function and class tests
    - integration/: HTTP endpoint workflows

Leverages pytest with pytest-asyncio and pytest-check for soft assertions.
"""
