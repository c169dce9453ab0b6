"""NiceGUI chat interface with paced answers and citation badges."""

import logging
import os
import uuid
from datetime import datetime

import httpx
from nicegui import events, ui

from docchat.citations import find_source
from docchat.config import get_app_config
from docchat.models.schemas import ChatResponse, Collection, MarkdownBlock, Source, TableBlock
from docchat.streaming import BlockStreamingEngine, CompletedSessions
from docchat.ui.render import render_answer

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

ALL_COLLECTIONS = "*"

CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    body { background: #f5f5f5; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
        overflow: hidden;
    }

    .header { background: linear-gradient(135deg, #1e3a8a 0%, #2563eb 100%); }

    .message-user {
        background: #2563eb;
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }

    .typing-dot {
        width: 8px; height: 8px;
        background: #2563eb;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .stream-cursor { animation: blink 1s infinite; margin-left: 2px; }
    @keyframes blink { 50% { opacity: 0; } }

    .citation-badge {
        display: inline-flex; margin: 0 2px; padding: 0 6px;
        border-radius: 6px; font-size: 0.75rem; font-weight: 600;
        background: rgba(59, 130, 246, 0.15); color: #1d4ed8;
        border: 1px solid rgba(59, 130, 246, 0.3); cursor: pointer;
    }
    .citation-badge:hover { background: rgba(59, 130, 246, 0.3); }
    .citation-inert {
        background: rgba(107, 114, 128, 0.15); color: #6b7280;
        border-color: transparent; cursor: not-allowed;
    }

    .answer-table { border-collapse: collapse; margin: 0.5rem 0; font-size: 0.8rem; }
    .answer-table th, .answer-table td { border: 1px solid #d1d5db; padding: 4px 8px; }
    .answer-table th { background: #e5e7eb; }

    .block-sources { display: flex; flex-wrap: wrap; gap: 6px; margin: 4px 0 8px; }
    .source-chip {
        font-size: 0.7rem; padding: 1px 6px; border-radius: 6px;
        background: rgba(16, 185, 129, 0.1); color: #047857;
    }
    .answer-sources { margin-top: 8px; padding-top: 6px; border-top: 1px solid #e5e7eb; }
    .answer-sources ul { font-size: 0.75rem; }
</style>
"""

# Forwards tab visibility changes to the page's event handlers
VISIBILITY_JS = """
<script>
document.addEventListener('visibilitychange', () => {
    emitEvent('page_visibility', {hidden: document.hidden});
});
</script>
"""


class AnswerError(Exception):
    """The chat API did not produce a usable answer."""


class ChatSession:
    """Manages chat state for a user session.

    The completed-answer registry lives as long as the browser tab, so it
    survives starting a new chat.
    """

    def __init__(self) -> None:
        self.messages: list[dict] = []
        self.session_id: str = str(uuid.uuid4())
        self.collection: str = ALL_COLLECTIONS
        self.engine: BlockStreamingEngine | None = None
        self.completed = CompletedSessions(get_app_config().max_completed_sessions)

    @property
    def is_streaming(self) -> bool:
        return self.engine is not None and self.engine.is_streaming and not self.engine.cancelled

    def add_message(self, role: str, content: str, answer: ChatResponse | None = None) -> dict:
        message = {
            "id": answer.message_id if answer else f"user_{uuid.uuid4().hex[:12]}",
            "role": role,
            "content": content,
            "answer": answer,
            "time": datetime.now().strftime("%I:%M %p"),
        }
        self.messages.append(message)
        return message

    def find_answer(self, message_id: str) -> ChatResponse | None:
        for message in self.messages:
            if message["id"] == message_id and message["answer"] is not None:
                return message["answer"]
        return None

    def stop_stream(self) -> None:
        """Cancel the in-flight answer animation, if any."""
        if self.engine is not None:
            self.engine.cancel()
            self.engine = None

    def reset(self) -> None:
        """Start a new chat; answers still in flight for the old one are dropped."""
        self.stop_stream()
        self.messages.clear()
        self.session_id = str(uuid.uuid4())

    def is_current(self, session_id: str) -> bool:
        return session_id == self.session_id


def lookup_citation(answer: ChatResponse, block_index: int, citation_id: str) -> Source | None:
    """Resolve a clicked badge to its source within the block's scope."""
    block: MarkdownBlock | TableBlock | None = None
    if 0 <= block_index < len(answer.blocks):
        block = answer.blocks[block_index]
    return find_source(block, answer.sources, citation_id)


async def fetch_answer(
    message: str,
    collection: str,
    session_id: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatResponse:
    """Request a complete answer from the chat API.

    Raises:
        AnswerError: The request failed or the reply is not a valid answer.
    """
    try:
        async with httpx.AsyncClient(
            timeout=get_app_config().timeout, transport=transport
        ) as client:
            response = await client.post(
                f"{API_BASE_URL}/api/chat",
                json={"message": message, "collections": [collection], "session_id": session_id},
            )
            response.raise_for_status()
            return ChatResponse.model_validate(response.json())
    except httpx.HTTPStatusError as e:
        raise AnswerError(f"HTTP {e.response.status_code}") from e
    except httpx.RequestError as e:
        raise AnswerError(f"Connection failed: {e}") from e
    except ValueError as e:
        logger.error(f"Chat API returned an invalid answer: {e}")
        raise AnswerError("Unexpected response from the chat API") from e


async def fetch_collections() -> list[Collection]:
    """Load collections for the selector; empty on failure."""
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            response = await client.get(f"{API_BASE_URL}/api/collections")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Could not load collections: {e}")
            return []
    return [Collection.model_validate(item) for item in response.json()]


@ui.page("/")
async def chat_page() -> None:
    """Main chat page."""
    ui.add_head_html(CUSTOM_CSS)
    ui.add_head_html(VISIBILITY_JS)
    session = ChatSession()
    speed = get_app_config().stream_speed

    collections = await fetch_collections()
    collection_options = {ALL_COLLECTIONS: "All collections"}
    collection_options.update({c.name: c.name for c in collections})

    messages_container: ui.column
    input_field: ui.textarea
    send_btn: ui.button

    def render_avatar(is_user: bool) -> None:
        color = "bg-blue-600" if is_user else "bg-gray-500"
        icon = "person" if is_user else "description"
        with ui.element("div").classes(
            f"w-9 h-9 rounded-full flex items-center justify-center {color}"
        ):
            ui.icon(icon).classes("text-white text-lg")

    def render_bubble(is_user: bool, time: str) -> ui.html:
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-assistant"
        with ui.row().classes(f"w-full {align} gap-3 items-end"):
            if not is_user:
                render_avatar(False)
            with ui.column().classes("max-w-[75%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                    content = ui.html("", sanitize=False).classes("text-sm leading-relaxed")
                ui.label(time).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )
            if is_user:
                render_avatar(True)
        return content

    def render_message(msg: dict) -> None:
        is_user = msg["role"] == "user"
        content = render_bubble(is_user, msg["time"])
        if is_user:
            content.set_content(msg["content"].replace("<", "&lt;").replace("\n", "<br>"))
        elif msg["answer"] is not None:
            answer: ChatResponse = msg["answer"]
            content.set_content(render_answer(answer.blocks, answer.sources, msg["id"]))
        else:
            content.set_content(msg["content"])

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            if not session.messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("forum").classes("text-5xl text-gray-300")
                    ui.label("Ask a question about your documents").classes(
                        "text-lg text-gray-400"
                    )
            else:
                for msg in session.messages:
                    render_message(msg)

    def render_status_indicator() -> ui.row:
        with ui.row().classes("w-full justify-start gap-3 items-end") as row:
            render_avatar(False)
            with ui.element("div").classes("message-assistant px-4 py-3"):
                with ui.row().classes("items-center gap-2"):
                    with ui.row().classes("gap-1"):
                        for _ in range(3):
                            ui.element("div").classes("typing-dot")
                    ui.label("Searching documents...").classes("text-sm text-gray-500 italic")
        return row

    def finish_turn() -> None:
        session.engine = None
        send_btn.enable()
        refresh_messages()

    async def send_message() -> None:
        text = input_field.value.strip()
        if not text or session.is_streaming:
            return

        input_field.value = ""
        send_btn.disable()
        session.add_message("user", text)
        refresh_messages()

        with messages_container:
            status_row = render_status_indicator()

        turn = session.session_id
        try:
            answer = await fetch_answer(text, session.collection, turn)
        except AnswerError as e:
            if session.is_current(turn):
                show_error(status_row, str(e))
            return
        if not session.is_current(turn):
            logger.info("Chat was reset while the answer loaded; dropping it")
            return

        status_row.delete()
        message = session.add_message("assistant", answer.answer, answer)
        with messages_container:
            response_html = render_bubble(False, message["time"])

        def on_tick(revealed: list[MarkdownBlock | TableBlock]) -> None:
            response_html.set_content(
                render_answer(revealed, answer.sources, message["id"], streaming=True)
            )

        session.engine = BlockStreamingEngine(
            answer.blocks,
            speed=speed,
            on_tick=on_tick,
            on_complete=finish_turn,
            registry=session.completed,
        )
        session.engine.start()

    def show_error(status_row: ui.row, error: str) -> None:
        status_row.delete()
        session.add_message("assistant", f"Error: {error}")
        send_btn.enable()
        refresh_messages()
        ui.notify(error, type="negative")

    def on_visibility(e: events.GenericEventArguments) -> None:
        if session.engine is not None:
            session.engine.set_visible(not e.args.get("hidden", False))

    def on_citation(e: events.GenericEventArguments) -> None:
        answer = session.find_answer(e.args.get("message", ""))
        if answer is None:
            return
        source = lookup_citation(answer, int(e.args.get("block", -1)), str(e.args.get("id", "")))
        if source is None:
            ui.notify("Source not found", type="warning")
            return
        show_source(source)

    def show_source(source: Source) -> None:
        source_body.clear()
        with source_body:
            ui.label(source.file_name).classes("text-base font-semibold")
            if source.page_number:
                ui.label(f"Page {source.page_number}").classes("text-xs text-gray-500")
            if source.snippet:
                ui.label(source.snippet).classes("text-sm italic text-gray-700")
            if source.file_url:
                url = source.file_url
                if url.startswith("/"):
                    url = f"{API_BASE_URL}{url}"
                if source.page_number:
                    url += f"#page={source.page_number}"
                ui.link("Open document", url, new_tab=True).classes("text-blue-600")
        source_dialog.open()

    def select_collection(e: events.ValueChangeEventArguments) -> None:
        session.collection = e.value or ALL_COLLECTIONS

    def new_chat() -> None:
        session.reset()
        send_btn.enable()
        refresh_messages()

    ui.on("page_visibility", on_visibility)
    ui.on("citation", on_citation)

    with ui.dialog() as source_dialog, ui.card().classes("w-[32rem] max-w-full"):
        source_body = ui.column().classes("w-full gap-2")
        ui.button("Close", on_click=source_dialog.close).props("flat")

    # === UI Layout ===
    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("menu_book").classes("text-white text-3xl")
                ui.label("DocChat").classes("text-lg font-semibold text-white")
            with ui.row().classes("items-center gap-3"):
                ui.select(
                    collection_options,
                    value=ALL_COLLECTIONS,
                    on_change=select_collection,
                ).props("dense outlined dark").classes("min-w-[10rem]")
                ui.button(icon="add", on_click=new_chat).props("flat round color=white")

        # Messages
        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")
            refresh_messages()

        # Input
        with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t"):
            with ui.element("div").classes("flex-grow px-3 py-2 border rounded-xl"):
                input_field = (
                    ui.textarea(placeholder="Ask about your documents...")
                    .props("autogrow borderless dense rows=1")
                    .classes("w-full")
                    .on("keydown.enter.prevent", send_message)
                )
            send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")

    # Stop any animation when the browser tab goes away
    ui.context.client.on_disconnect(session.stop_stream)


def main() -> None:
    ui.run(title="DocChat", port=int(os.getenv("UI_PORT", "8080")), reload=False)


if __name__ == "__main__":
    main()
