"""Builders shared by the test modules."""

from datetime import datetime, timedelta, timezone

from healthtrack.models import ConversationThread, Message, SymptomRecord

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_record(
    index: int,
    *,
    severity: int | None = 5,
    type: str = "physical",
    at: datetime | None = None,
    patient_id: str = "p1",
    description: str = "",
) -> SymptomRecord:
    return SymptomRecord(
        id=f"s{index}",
        patient_id=patient_id,
        type=type,
        short_name=f"symptom {index}",
        description=description,
        severity=severity,
        notes="",
        created_at=at or BASE_TIME + timedelta(hours=index),
    )


def make_thread(
    thread_id: str,
    texts: list[str],
    *,
    updated_at: datetime | None = None,
    patient_id: str = "p1",
) -> ConversationThread:
    roles = ("patient", "assistant")
    return ConversationThread(
        id=thread_id,
        patient_id=patient_id,
        messages=[Message(role=roles[i % 2], text=text) for i, text in enumerate(texts)],
        updated_at=updated_at or BASE_TIME,
    )
