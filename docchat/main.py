"""DocChat entry point.

Integrated mode (default) serves the API and the NiceGUI chat page from
one uvicorn process. ``RUN_MODE=separate`` starts the API and the UI as
two processes, with the UI pointed at the API through ``API_BASE_URL``.
"""

import logging
import os
import subprocess
import sys
import time

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("docchat")


def configure_logging() -> None:
    """Send application logs to stdout at ``LOG_LEVEL`` (INFO by default)."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def run_integrated(host: str, port: int) -> None:
    """Mount the chat page onto the API app and serve both on one port."""
    # The page calls the API over HTTP, so it must know this server's address
    # before chat_page reads it at import time.
    os.environ.setdefault("API_BASE_URL", f"http://127.0.0.1:{port}")

    import uvicorn
    from nicegui import ui

    from docchat.api.app import create_app
    from docchat.ui.chat_page import chat_page  # noqa: F401 - registers "/"

    app = create_app()
    ui.run_with(
        app,
        title="DocChat",
        favicon="📄",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "docchat-secret"),
    )

    logger.info(f"Chat UI on http://{host}:{port}/, API docs on http://{host}:{port}/docs")
    uvicorn.run(app, host=host, port=port, log_level=os.getenv("LOG_LEVEL", "info").lower())


def run_separate(host: str, api_port: int, ui_port: int) -> None:
    """Run the API and the UI as child processes until either exits."""
    ui_env = {
        **os.environ,
        "API_BASE_URL": os.getenv("API_BASE_URL", f"http://127.0.0.1:{api_port}"),
        "UI_PORT": str(ui_port),
    }
    processes = [
        subprocess.Popen(
            [
                sys.executable,
                "-m",
                "uvicorn",
                "docchat.api.app:app",
                "--host",
                host,
                "--port",
                str(api_port),
            ]
        ),
        subprocess.Popen(
            [sys.executable, "-c", "from docchat.ui.chat_page import main; main()"],
            env=ui_env,
        ),
    ]
    logger.info(f"API on http://{host}:{api_port}, chat UI on http://{host}:{ui_port}")

    try:
        while all(proc.poll() is None for proc in processes):
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down servers...")
    finally:
        for proc in processes:
            proc.terminate()
        for proc in processes:
            proc.wait()


def main() -> None:
    """Start DocChat in the mode selected by ``RUN_MODE``."""
    configure_logging()
    mode = os.getenv("RUN_MODE", "integrated").lower()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    logger.info(f"Starting DocChat {mode}")
    if mode == "separate":
        run_separate(host, port, int(os.getenv("UI_PORT", "8080")))
    else:
        run_integrated(host, port)


if __name__ == "__main__":
    main()
