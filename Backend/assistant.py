"""
AI Security Assistant

Streaming follow-up chat grounded on a scan's recommendations. The endpoint
relays the gateway's chat-completion stream as server-sent events:

    data: {"choices":[{"delta":{"content":"..."}}]}\\n\\n
    ...
    data: [DONE]\\n\\n

SSEStreamParser is the consuming side: it turns a byte stream split at
arbitrary boundaries back into assistant text.
"""
import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, List, Optional

from openai import APIStatusError, OpenAIError, RateLimitError

from ai_gateway import create_gateway_client, gateway_model
from models import AssistantRequest

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class AssistantError(Exception):
    """Raised before streaming starts; carries the HTTP status to return."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def build_system_prompt(request: AssistantRequest) -> str:
    lines = [
        "You are an expert web security assistant helping a website owner fix issues found by an automated security scan.",
        "Give practical, step-by-step guidance. Include short configuration or code examples where they help.",
    ]

    if request.scanData:
        lines.append(
            f"Scanned website: {request.scanData.url} (security score {request.scanData.score}/100)."
        )

    if request.recommendations:
        lines.append("Current recommendations from the scan:")
        for i, recommendation in enumerate(request.recommendations, start=1):
            lines.append(f"{i}. {recommendation}")

    return "\n".join(lines)


def build_messages(request: AssistantRequest) -> List[dict]:
    return [
        {"role": "system", "content": build_system_prompt(request)},
        {"role": "user", "content": request.message},
    ]


class SecurityAssistant:
    """Pass-through proxy from the assistant endpoint to the AI gateway."""

    def __init__(self):
        self.client = create_gateway_client()
        self.model = gateway_model()

    async def open_stream(self, request: AssistantRequest) -> AsyncIterator[bytes]:
        """
        Start a streamed completion and return an iterator of SSE frames.

        Raises:
            AssistantError: gateway not configured or upstream rejected the
                request. Mapped to 402/429/500 by the caller.
        """
        if self.client is None:
            raise AssistantError(500, "AI service is not configured")

        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=build_messages(request),
                stream=True
            )
        except RateLimitError:
            raise AssistantError(429, "Rate limits exceeded, please try again later.")
        except APIStatusError as e:
            if e.status_code == 402:
                raise AssistantError(402, "Payment required, please add funds to your AI workspace.")
            logger.error(f"AI gateway error: {e.status_code}")
            raise AssistantError(500, "AI gateway error")
        except OpenAIError as e:
            logger.error(f"AI gateway request failed: {type(e).__name__}: {e}")
            raise AssistantError(500, "AI gateway error")

        return self._relay(stream)

    async def _relay(self, stream) -> AsyncIterator[bytes]:
        try:
            async for chunk in stream:
                yield f"data: {chunk.model_dump_json(exclude_none=True)}\n\n".encode("utf-8")
        except OpenAIError as e:
            # Headers are already sent; the stream just ends
            logger.error(f"AI stream interrupted: {type(e).__name__}: {e}")
            return
        yield f"data: {DONE_SENTINEL}\n\n".encode("utf-8")


# =============================================================================
# SSE STREAM PARSING
# =============================================================================

class SSEStreamParser:
    """
    Incremental parser for `data:` lines of a chat-completion stream.

    Partial lines and partial UTF-8 sequences are buffered across feed()
    calls, so the extracted text does not depend on where chunks were split.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> List[str]:
        """Process whatever remains after the stream closed."""
        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        return self._parse_lines([remaining])

    def _parse_lines(self, lines: List[str]) -> List[str]:
        deltas = []
        for line in lines:
            content = self._parse_line(line)
            if content:
                deltas.append(content)
        return deltas

    @staticmethod
    def _parse_line(line: str) -> Optional[str]:
        line = line.rstrip("\r")
        if not line.strip() or line.startswith(":"):
            return None
        if not line.startswith("data: "):
            return None

        payload = line[6:].strip()
        if payload == DONE_SENTINEL:
            return None

        try:
            parsed = json.loads(payload)
            content = parsed["choices"][0]["delta"].get("content")
        except (json.JSONDecodeError, KeyError, IndexError, TypeError, AttributeError):
            return None
        return content if isinstance(content, str) else None


async def iter_assistant_text(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield assistant text deltas from a raw SSE byte stream."""
    parser = SSEStreamParser()
    async for chunk in chunks:
        for delta in parser.feed(chunk):
            yield delta
    for delta in parser.flush():
        yield delta


def parse_assistant_text(data: bytes) -> str:
    parser = SSEStreamParser()
    return "".join(parser.feed(data) + parser.flush())
