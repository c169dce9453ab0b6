"""Mock answer provider backed by a packaged fixture."""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from docchat.models.schemas import BackendAnswer, ChatRequest, ChatResponse
from docchat.providers.base import ChatApi, build_response
from docchat.providers.collections import CollectionStore, get_collection_store
from docchat.providers.transform import transform_backend_answers

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"
ANSWERS_FIXTURE = DATA_DIR / "answers.json"

# Number of fixture answers returned per question
FIXTURE_ANSWERS = 2
FALLBACK_CITATIONS = 3

_answers_adapter = TypeAdapter(list[BackendAnswer])


class MockChatApi(ChatApi):
    """Answers every question from the fixture in backend wire format.

    Falls back to a generated answer citing files of the selected
    collection when the fixture is missing or malformed.
    """

    def __init__(
        self,
        fixture_path: Path = ANSWERS_FIXTURE,
        store: CollectionStore | None = None,
    ) -> None:
        self._fixture_path = fixture_path
        self._store = store or get_collection_store()

    def _load_fixture(self) -> list[BackendAnswer]:
        try:
            raw = json.loads(self._fixture_path.read_text(encoding="utf-8"))
            answers = _answers_adapter.validate_python(raw)
        except FileNotFoundError:
            logger.info(f"No answer fixture at {self._fixture_path}; using fallback response")
            return []
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Malformed answer fixture {self._fixture_path}: {e}")
            return []
        return answers[:FIXTURE_ANSWERS]

    def _fallback(self, request: ChatRequest) -> list[BackendAnswer]:
        citations: list[str] = []
        name = request.collection_name
        if name:
            files = self._store.get_files(name)[:FALLBACK_CITATIONS]
            citations = [f.name for f in files]

        markers = " ".join(f"[{i}]" for i in range(1, len(citations) + 1))
        text = (
            f'### Answer to: "{request.message}"\n\n'
            "This is a sample answer from the mock provider. With a real backend "
            "the content comes from the retrieval pipeline."
        )
        if markers:
            text += f" See {markers}."
        return [BackendAnswer(text=text, file_citation=citations)]

    async def chat(self, request: ChatRequest) -> ChatResponse:
        answers = self._load_fixture() or self._fallback(request)
        blocks, sources = transform_backend_answers(
            answers, request.collection_name, self._store
        )
        logger.info(f"Mock answer with {len(blocks)} blocks and {len(sources)} sources")
        return build_response(list(blocks), sources)
