"""FastAPI endpoints for document chat.

HTTP and streaming routes with async request handling. Answers are
paced over Server-Sent Events.

Endpoints:
    - GET /health: Service health status
    - POST /api/chat: Complete answer for a question
    - POST /chat/stream: Paced answer as Server-Sent Events
    - GET/POST /api/collections: Collection listing and creation
    - POST /api/collections/{collection}/files: PDF upload
    - GET /api/files/{file_id}: Stored file for the source viewer
"""

from docchat.api.app import app, create_app

__all__ = ["app", "create_app"]
