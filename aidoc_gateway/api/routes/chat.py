"""
Chat Router - Streaming and synchronous chat, health insights

Endpoints:
    POST /v1/chat          SSE stream: data: {"content": ...} frames, then data: [DONE]
    POST /v1/chat/sync     complete response as JSON
    POST /v1/insights      insights (or a period summary) over health data

Gateway errors raised before the first SSE frame, and all errors on the
JSON endpoints, go through the exception handlers in api.errors. Once a
stream has started, a failure is reported as a data: {"error": ...} frame
followed by data: [DONE].

Reference Documents:
- GUIDELINES p. 2149: Iterator protocol with yield for streaming
- Newman pp. 273-275: Error translation
"""

import asyncio
import json
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from aidoc_gateway.api.deps import get_gateway
from aidoc_gateway.api.errors import error_body
from aidoc_gateway.core.exceptions import AIDocGatewayError
from aidoc_gateway.models.requests import ChatRequest, InsightsRequest
from aidoc_gateway.models.responses import ChatResponse, InsightsResponse
from aidoc_gateway.observability.logging import get_logger
from aidoc_gateway.services.gateway import ProviderGateway

logger = get_logger(__name__)

SSE_DONE = "data: [DONE]\n\n"

router = APIRouter(prefix="/v1", tags=["Chat"])


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


# =============================================================================
# Streaming Chat
# =============================================================================


@router.post("/chat", response_model=None)
async def chat_stream(
    request: ChatRequest,
    gateway: ProviderGateway = Depends(get_gateway),
) -> StreamingResponse:
    """
    Stream a chat response as Server-Sent Events.

    The first chunk is awaited before the response starts so that a failure
    that produces no output is returned as a proper HTTP error status.
    """
    chunks = gateway.chat(request.messages)
    try:
        first = await chunks.__anext__()
    except StopAsyncIteration:
        first = None

    return StreamingResponse(
        _stream_sse(chunks, first),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


async def _stream_sse(
    chunks: AsyncGenerator[str, None], first: Optional[str]
) -> AsyncIterator[str]:
    """
    Frame gateway chunks as SSE.

    Client disconnect cancels this generator; the finally clause closes the
    gateway stream, which releases the provider connection.
    """
    try:
        if first is None:
            yield SSE_DONE
            return

        yield _sse({"content": first})
        async for chunk in chunks:
            yield _sse({"content": chunk})
    except AIDocGatewayError as e:
        logger.warning("chat_stream_failed", error=str(e))
        yield _sse(error_body(e).model_dump())
    except asyncio.CancelledError:
        logger.info("chat_stream_cancelled")
        raise
    finally:
        await chunks.aclose()

    yield SSE_DONE


# =============================================================================
# Synchronous Chat
# =============================================================================


@router.post("/chat/sync", response_model=ChatResponse)
async def chat_sync(
    request: ChatRequest,
    gateway: ProviderGateway = Depends(get_gateway),
) -> ChatResponse:
    """Return one complete response."""
    content = await gateway.chat_sync(request.messages, timeout=request.timeout_seconds)
    return ChatResponse(
        content=content,
        provider=gateway.get_provider_name(),
        model=gateway.get_model_name(),
    )


# =============================================================================
# Health Insights
# =============================================================================


@router.post("/insights", response_model=InsightsResponse)
async def insights(
    request: InsightsRequest,
    gateway: ProviderGateway = Depends(get_gateway),
) -> InsightsResponse:
    """Insights over the given health data, or a summary when a period is given."""
    if request.period:
        text = await gateway.get_summary(request.health_data, request.period)
    else:
        text = await gateway.get_insights(request.health_data)
    return InsightsResponse(insights=text, period=request.period)
