import asyncio
import json
import unittest
from unittest.mock import AsyncMock, patch

from healthtrack.context.assembler import assemble_context
from healthtrack.reporting.prompts import build_session_instructions
from healthtrack.reporting.report_generator import clean_json_response, generate_clinical_report
from healthtrack.tests.helpers import make_record, make_thread

_REPORT = {
    "overview": "Recurring headaches over one week.",
    "symptom_trends": "Severity stable around 5.",
    "conversation_highlights": "Patient mentions poor sleep.",
    "follow_up_topics": ["sleep hygiene"],
}


def _assembled():
    return assemble_context("p1", [make_record(1)], [make_thread("t1", ["my head hurts"])])


class CleanJsonResponseTests(unittest.TestCase):
    def test_strips_code_fences(self) -> None:
        self.assertEqual(clean_json_response('```json\n{"a": 1}\n```'), '{"a": 1}')
        self.assertEqual(clean_json_response('  {"a": 1}  '), '{"a": 1}')


class GenerateClinicalReportTests(unittest.TestCase):
    def test_parses_report_and_sends_payload(self) -> None:
        assembled = _assembled()
        chat_mock = AsyncMock(return_value="```json\n" + json.dumps(_REPORT) + "\n```")

        with patch("healthtrack.reporting.report_generator.chat_completion", new=chat_mock):
            report = asyncio.run(generate_clinical_report(assembled))

        self.assertEqual(report.follow_up_topics, ["sleep hygiene"])
        chat_mock.assert_awaited_once()
        self.assertIn(assembled.payload, chat_mock.await_args.kwargs["user_prompt"])

    def test_retries_once_on_invalid_json(self) -> None:
        chat_mock = AsyncMock(side_effect=["not json", json.dumps(_REPORT)])

        with patch("healthtrack.reporting.report_generator.chat_completion", new=chat_mock):
            report = asyncio.run(generate_clinical_report(_assembled()))

        self.assertEqual(report.overview, _REPORT["overview"])
        self.assertEqual(chat_mock.await_count, 2)
        self.assertIn("Output ONLY valid JSON", chat_mock.await_args_list[1].kwargs["user_prompt"])

    def test_falls_back_after_second_failure(self) -> None:
        chat_mock = AsyncMock(side_effect=["not json", '["a list"]'])

        with patch("healthtrack.reporting.report_generator.chat_completion", new=chat_mock):
            report = asyncio.run(generate_clinical_report(_assembled()))

        self.assertIn("Unable to generate report", report.overview)
        self.assertEqual(report.follow_up_topics, [])

    def test_upstream_errors_propagate(self) -> None:
        chat_mock = AsyncMock(side_effect=RuntimeError("endpoint not found"))

        with patch("healthtrack.reporting.report_generator.chat_completion", new=chat_mock):
            with self.assertRaises(RuntimeError):
                asyncio.run(generate_clinical_report(_assembled()))


class SessionInstructionsTests(unittest.TestCase):
    def test_embeds_context_payload(self) -> None:
        assembled = _assembled()

        instructions = build_session_instructions(assembled.payload)

        self.assertIn(assembled.payload, instructions)


if __name__ == "__main__":
    unittest.main()
