import asyncio
import json
from pathlib import Path
import tempfile
from types import SimpleNamespace
import unittest
from unittest.mock import AsyncMock, patch

import httpx
from openai import APIConnectionError, NotFoundError

from healthtrack.config import settings
from healthtrack.reporting import client as report_client

_REQUEST = httpx.Request("POST", "http://llm.test/v1/chat/completions")


def _completion_stub(text: str | None) -> object:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
    )


def _fake_client(side_effect: list) -> tuple[object, AsyncMock]:
    create_mock = AsyncMock(side_effect=side_effect)
    fake_client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create_mock)),
    )
    return fake_client, create_mock


class ReportClientTests(unittest.TestCase):
    def test_retries_transient_error_then_succeeds(self) -> None:
        fake_client, create_mock = _fake_client(
            [APIConnectionError(request=_REQUEST), _completion_stub("ok")]
        )

        with (
            patch.object(settings, "report_model", "test-model"),
            patch.object(settings, "report_max_retries", 2),
            patch.object(settings, "report_retry_backoff_seconds", 0.5),
            patch.object(settings, "report_log_enabled", False),
            patch("healthtrack.reporting.client.get_client", return_value=fake_client),
            patch("healthtrack.reporting.client.asyncio.sleep", new=AsyncMock()) as sleep_mock,
        ):
            output = asyncio.run(
                report_client.chat_completion(
                    system_prompt="sys",
                    user_prompt="user",
                    call_type="unit_test",
                )
            )

        self.assertEqual(output, "ok")
        self.assertEqual(create_mock.await_count, 2)
        sleep_mock.assert_awaited_once_with(0.5)
        first_call_kwargs = create_mock.await_args_list[0].kwargs
        self.assertEqual(first_call_kwargs["model"], "test-model")
        self.assertEqual(first_call_kwargs["messages"][0], {"role": "system", "content": "sys"})

    def test_raises_last_error_when_retries_exhausted(self) -> None:
        fake_client, create_mock = _fake_client(
            [APIConnectionError(request=_REQUEST), APIConnectionError(request=_REQUEST)]
        )

        with (
            patch.object(settings, "report_max_retries", 1),
            patch.object(settings, "report_retry_backoff_seconds", 0.25),
            patch.object(settings, "report_log_enabled", False),
            patch("healthtrack.reporting.client.get_client", return_value=fake_client),
            patch("healthtrack.reporting.client.asyncio.sleep", new=AsyncMock()) as sleep_mock,
        ):
            with self.assertRaises(APIConnectionError):
                asyncio.run(report_client.chat_completion(system_prompt="sys", user_prompt="user"))

        self.assertEqual(create_mock.await_count, 2)
        sleep_mock.assert_awaited_once_with(0.25)

    def test_not_found_is_not_retried(self) -> None:
        not_found = NotFoundError(
            "model not found",
            response=httpx.Response(404, request=_REQUEST),
            body=None,
        )
        fake_client, create_mock = _fake_client([not_found])

        with (
            patch.object(settings, "report_max_retries", 3),
            patch.object(settings, "report_log_enabled", False),
            patch("healthtrack.reporting.client.get_client", return_value=fake_client),
            patch("healthtrack.reporting.client.asyncio.sleep", new=AsyncMock()) as sleep_mock,
        ):
            with self.assertRaises(RuntimeError) as ctx:
                asyncio.run(report_client.chat_completion(system_prompt="sys", user_prompt="user"))

        self.assertIn("HT_REPORT_BASE_URL", str(ctx.exception))
        self.assertEqual(create_mock.await_count, 1)
        sleep_mock.assert_not_awaited()

    def test_empty_content_returns_empty_string(self) -> None:
        fake_client, _ = _fake_client([_completion_stub(None)])

        with (
            patch.object(settings, "report_log_enabled", False),
            patch("healthtrack.reporting.client.get_client", return_value=fake_client),
        ):
            output = asyncio.run(report_client.chat_completion(system_prompt="sys", user_prompt="user"))

        self.assertEqual(output, "")

    def test_call_log_records_sizes_not_prompt_text(self) -> None:
        fake_client, _ = _fake_client(
            [APIConnectionError(request=_REQUEST), _completion_stub("summary")]
        )

        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "calls.jsonl"
            with (
                patch.object(settings, "report_log_enabled", True),
                patch.object(settings, "report_log_path", str(log_path)),
                patch.object(settings, "report_max_retries", 1),
                patch("healthtrack.reporting.client.get_client", return_value=fake_client),
                patch("healthtrack.reporting.client.asyncio.sleep", new=AsyncMock()),
            ):
                asyncio.run(
                    report_client.chat_completion(
                        system_prompt="sys",
                        user_prompt="patient reports chest pain",
                        call_type="clinical_report",
                    )
                )

            raw = log_path.read_text(encoding="utf-8")

        lines = [json.loads(line) for line in raw.splitlines()]
        self.assertEqual([line["attempt"] for line in lines], [1, 2])
        self.assertEqual(lines[0]["error"], "APIConnectionError")
        self.assertIsNone(lines[1]["error"])
        self.assertEqual(lines[1]["prompt_chars"], len("sys") + len("patient reports chest pain"))
        self.assertEqual(lines[1]["output_chars"], len("summary"))
        self.assertEqual(lines[0]["call_id"], lines[1]["call_id"])
        self.assertNotIn("chest pain", raw)


if __name__ == "__main__":
    unittest.main()
