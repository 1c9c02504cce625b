"""Chat-completion client for the report LLM (any OpenAI-compatible server)."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from uuid import uuid4

from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    NotFoundError,
    RateLimitError,
)

from healthtrack.config import settings

logger = logging.getLogger(__name__)

TRANSIENT_LLM_ERRORS = (
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
    RateLimitError,
)

_client: AsyncOpenAI | None = None
_semaphore: asyncio.Semaphore | None = None
_call_log_lock = Lock()


@dataclass
class ReportCall:
    """One logical report request.

    Log lines carry sizes and timings only; prompts embed patient history
    and are never written to disk.
    """

    call_type: str
    prompt_chars: int
    call_id: str = field(default_factory=lambda: uuid4().hex)

    def log_line(self, attempt: int, started: float, output: str | None, error: Exception | None) -> dict:
        return {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "call_id": self.call_id,
            "call_type": self.call_type,
            "attempt": attempt,
            "model": settings.report_model,
            "prompt_chars": self.prompt_chars,
            "output_chars": None if output is None else len(output),
            "latency_ms": int((time.perf_counter() - started) * 1000),
            "error": type(error).__name__ if error else None,
        }


def _write_call_log(line: dict) -> None:
    if not settings.report_log_enabled:
        return
    path = Path(settings.report_log_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with _call_log_lock, path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(line) + "\n")
    except OSError:
        logger.exception("Could not append to report call log %s", path)


def get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        # Retries are handled below so they share the concurrency slot.
        _client = AsyncOpenAI(
            base_url=settings.report_base_url,
            api_key=settings.report_api_key,
            timeout=settings.report_request_timeout_seconds,
            max_retries=0,
        )
    return _client


def _report_slot() -> asyncio.Semaphore:
    global _semaphore
    if _semaphore is None:
        _semaphore = asyncio.Semaphore(settings.report_max_concurrent_calls)
    return _semaphore


async def chat_completion(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int | None = None,
    temperature: float | None = None,
    call_type: str = "report",
) -> str:
    """Return the assistant text for one system + user exchange.

    Transient transport errors are retried with exponential backoff; the last
    one is re-raised. A 404 means the base URL or model is misconfigured and
    surfaces as RuntimeError without retrying.
    """
    call = ReportCall(call_type=call_type, prompt_chars=len(system_prompt) + len(user_prompt))
    request = {
        "model": settings.report_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": max_tokens or settings.report_max_tokens,
        "temperature": settings.report_temperature if temperature is None else temperature,
    }
    retries = max(0, settings.report_max_retries)
    client = get_client()

    attempt = 0
    async with _report_slot():
        while True:
            started = time.perf_counter()
            try:
                response = await client.chat.completions.create(**request)
            except NotFoundError as exc:
                _write_call_log(call.log_line(attempt + 1, started, None, exc))
                raise RuntimeError(
                    f"Report model {settings.report_model!r} not found at "
                    f"{settings.report_base_url}; check HT_REPORT_BASE_URL and HT_REPORT_MODEL."
                ) from exc
            except TRANSIENT_LLM_ERRORS as exc:
                _write_call_log(call.log_line(attempt + 1, started, None, exc))
                if attempt >= retries:
                    raise
                delay = settings.report_retry_backoff_seconds * (2**attempt)
                logger.warning(
                    "Report call %s failed with %s; retrying in %.2fs",
                    call.call_id,
                    type(exc).__name__,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue

            output = response.choices[0].message.content or ""
            _write_call_log(call.log_line(attempt + 1, started, output, None))
            return output
