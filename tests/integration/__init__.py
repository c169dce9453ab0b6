"""Integration tests for the API working as a system.

Coverage:
    - SSE streaming of paced answers
    - One-shot chat answers and provider failures
    - Collection management, PDF upload and file serving

Runs against the real FastAPI app with the mock answer provider; no
network or API keys required.
"""
