import unittest

from healthtrack.context.flattener import flatten_conversations
from healthtrack.models import ConversationThread, Message, MessageRole
from healthtrack.tests.helpers import BASE_TIME, make_thread


class FlattenConversationsTests(unittest.TestCase):
    def test_no_threads(self) -> None:
        self.assertEqual(flatten_conversations([], 10), [])

    def test_threads_in_given_order_messages_in_stored_order(self) -> None:
        newest = make_thread("t2", ["n1", "n2"])
        oldest = make_thread("t1", ["o1", "o2", "o3"])

        result = flatten_conversations([newest, oldest], 100)

        self.assertEqual([m.text for m in result], ["n1", "n2", "o1", "o2", "o3"])
        self.assertEqual(result[0].role, MessageRole.PATIENT)
        self.assertEqual(result[1].role, MessageRole.ASSISTANT)

    def test_cap_is_checked_after_each_thread(self) -> None:
        threads = [
            make_thread("a", ["a1", "a2", "a3"]),
            make_thread("b", ["b1", "b2", "b3"]),
            make_thread("c", ["c1"]),
        ]

        result = flatten_conversations(threads, 4)

        # Thread b pushes the total to 6 (> 4), then iteration stops.
        self.assertEqual(len(result), 6)
        self.assertEqual(result[-1].text, "b3")

    def test_reaching_cap_exactly_keeps_going(self) -> None:
        threads = [
            make_thread("a", ["a1", "a2"]),
            make_thread("b", ["b1"]),
        ]

        result = flatten_conversations(threads, 2)

        self.assertEqual([m.text for m in result], ["a1", "a2", "b1"])

    def test_incomplete_messages_are_skipped(self) -> None:
        thread = ConversationThread(
            id="t",
            patient_id="p1",
            messages=[
                Message(role="patient", text="hello"),
                Message(role=None, text="orphan"),
                Message(role="assistant", text=""),
                Message(role="system", text="unknown role"),
                {"text": "no role"},
                Message(role="assistant", text="hi there"),
            ],
            updated_at=BASE_TIME,
        )

        result = flatten_conversations([thread], 10)

        self.assertEqual([m.text for m in result], ["hello", "hi there"])


if __name__ == "__main__":
    unittest.main()
