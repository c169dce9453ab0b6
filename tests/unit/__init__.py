"""Unit tests for individual components in isolation.

Ensures fast execution with minimal dependencies.

Coverage:
    - models/: Pydantic validation and serialization
    - citations/: Marker extraction and source resolution
    - streaming/: Paced reveal, replay skip and cancellation
    - providers/: Answer sources and backend transformation
    - parsing/: PDF validation and text extraction

Uses httpx mock transports for the QA backend. Leverages pytest-check
for multiple assertions per test.
"""
