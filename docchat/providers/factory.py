"""Selection of the answer provider from configuration."""

import logging

from docchat.config import AppConfig, get_app_config
from docchat.providers.base import ChatApi
from docchat.providers.demo import DemoResponseService
from docchat.providers.mock import MockChatApi
from docchat.providers.real import RealChatApi

logger = logging.getLogger(__name__)

# Module-level singleton instance
_chat_api: ChatApi | None = None


def create_chat_api(config: AppConfig) -> ChatApi:
    """Build the provider selected by ``use_mock`` and ``demo_mode``."""
    if not config.use_mock:
        logger.info(f"Using QA backend at {config.api_base_url}")
        return RealChatApi(config=config)
    if config.demo_mode:
        logger.info("Using demo transcript answers")
        return DemoResponseService()
    logger.info("Using mock fixture answers")
    return MockChatApi()


def get_chat_api() -> ChatApi:
    """Get or create the global answer provider.

    Returns:
        The ChatApi instance.
    """
    global _chat_api
    if _chat_api is None:
        _chat_api = create_chat_api(get_app_config())
    return _chat_api
