"""HTTP client for the QA backend.

Backend endpoint: ``POST /qa`` with multipart form fields
``collection_name`` and ``question``; responds with
``[{"text": str, "file_citation": [str]}]``.
"""

import logging

import httpx
from pydantic import TypeAdapter, ValidationError

from docchat.config import AppConfig, get_app_config
from docchat.models.schemas import BackendAnswer, ChatRequest, ChatResponse
from docchat.providers.base import ChatApi, ChatApiError, build_response
from docchat.providers.collections import CollectionStore, get_collection_store
from docchat.providers.transform import transform_backend_answers

logger = logging.getLogger(__name__)

QA_ENDPOINT = "/qa"

_answers_adapter = TypeAdapter(list[BackendAnswer])


class RealChatApi(ChatApi):
    """Calls the QA backend and converts its answers."""

    def __init__(
        self,
        config: AppConfig | None = None,
        store: CollectionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or get_app_config()
        self._store = store or get_collection_store()
        self._transport = transport

    async def chat(self, request: ChatRequest) -> ChatResponse:
        collection_name = request.collection_name or ""
        url = f"{self._config.api_base_url}{QA_ENDPOINT}"
        logger.info(f"Calling QA API: {url} (collection={collection_name!r})")

        # Multipart form fields, not JSON
        form = {
            "collection_name": (None, collection_name),
            "question": (None, request.message),
        }
        async with httpx.AsyncClient(
            timeout=self._config.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.post(url, files=form)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"QA API error: {e.response.status_code} {e.response.text}")
                raise ChatApiError(
                    f"API Error: {e.response.status_code} - {e.response.text}"
                ) from e
            except httpx.RequestError as e:
                logger.error(f"QA API unreachable: {e}")
                raise ChatApiError(f"Connection failed: {e}") from e

        try:
            answers = _answers_adapter.validate_json(response.content)
        except ValidationError as e:
            raise ChatApiError(f"Unexpected QA API response: {e}") from e

        blocks, sources = transform_backend_answers(answers, collection_name or None, self._store)
        return build_response(list(blocks), sources)
