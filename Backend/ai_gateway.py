"""
Hosted AI gateway client factory.

The gateway speaks the OpenAI chat-completions protocol, so the `openai` SDK
is pointed at it via base_url. Client-side retries are disabled.
"""
import os
import logging
from typing import Optional

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1"
DEFAULT_MODEL = "google/gemini-2.5-flash"


def gateway_model() -> str:
    return os.getenv("AI_MODEL", DEFAULT_MODEL)


def create_gateway_client() -> Optional[AsyncOpenAI]:
    """Return a configured client, or None if AI_GATEWAY_API_KEY is not set."""
    api_key = os.getenv("AI_GATEWAY_API_KEY")
    if not api_key:
        logger.warning("⚠️ AI_GATEWAY_API_KEY not found. AI features disabled.")
        return None

    return AsyncOpenAI(
        base_url=os.getenv("AI_GATEWAY_URL", DEFAULT_GATEWAY_URL),
        api_key=api_key,
        max_retries=0,
    )
