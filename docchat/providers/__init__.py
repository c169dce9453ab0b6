"""Answer providers and document collections.

Responsibilities:
    - Mock answers from a packaged fixture in backend wire format
    - Rotating demo transcript for offline demonstrations
    - HTTP client for the real QA backend
    - Backend answer to content block conversion
    - In-memory collections of uploaded PDFs

Every provider returns a complete answer; pacing is done by docchat.streaming.
"""

from docchat.providers.base import ChatApi, ChatApiError
from docchat.providers.collections import CollectionStore, UnknownFileError, get_collection_store
from docchat.providers.demo import DemoResponseService
from docchat.providers.factory import get_chat_api
from docchat.providers.mock import MockChatApi
from docchat.providers.real import RealChatApi
from docchat.providers.transform import transform_backend_answers

__all__ = [
    "ChatApi",
    "ChatApiError",
    "CollectionStore",
    "DemoResponseService",
    "MockChatApi",
    "RealChatApi",
    "UnknownFileError",
    "get_chat_api",
    "get_collection_store",
    "transform_backend_answers",
]
