"""IntakeSession: scripted question-by-question symptom capture."""

from __future__ import annotations

from uuid import uuid4

from healthtrack.models import SymptomInput
from healthtrack.symptoms.classifier import SymptomClassifier, default_classifier
from healthtrack.symptoms.severity import normalize_severity

INTAKE_QUESTIONS = (
    "What symptom are you experiencing?",
    "On a scale of 1 to 10, how severe is it right now?",
    "Please describe what you're feeling in more detail.",
    "Any additional notes or context (triggers, timing, other details) you'd like to add?",
)

# Field filled by the answer to each question, in question order.
_ANSWER_FIELDS = ("short_name", "severity", "description", "notes")

CLOSING_LINE = "Thanks, I have everything I need for now."
COMPLETE_LINE = "Thank you, your symptom information has been recorded for the care team."


class IntakeSession:
    """Walks a patient through the fixed intake questions.

    The type is never asked for; it is re-inferred after the symptom and
    description answers.
    """

    def __init__(
        self,
        session_id: str | None = None,
        classifier: SymptomClassifier = default_classifier,
    ) -> None:
        self.session_id = session_id or uuid4().hex
        self.classifier = classifier
        self.question_index = 0
        self.answers: dict[str, object] = {}
        self.symptom_type: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.question_index >= len(INTAKE_QUESTIONS)

    @property
    def current_question(self) -> str:
        if self.is_complete:
            return CLOSING_LINE
        return INTAKE_QUESTIONS[self.question_index]

    @property
    def next_question(self) -> str:
        if self.is_complete:
            return COMPLETE_LINE
        return self.current_question

    @property
    def draft(self) -> SymptomInput:
        return SymptomInput(
            type=self.symptom_type,
            short_name=self.answers.get("short_name"),
            description=self.answers.get("description"),
            severity=self.answers.get("severity"),
            notes=self.answers.get("notes"),
        )

    def record_response(self, response: object) -> None:
        """Store the answer to the current question and advance."""
        if self.is_complete:
            return

        field = _ANSWER_FIELDS[self.question_index]
        text = "" if response is None else str(response).strip()
        if field == "severity":
            self.answers[field] = normalize_severity(text)
        else:
            self.answers[field] = text

        if field in ("short_name", "description"):
            self.symptom_type = self.classifier.classify(
                self.answers.get("short_name"),
                self.answers.get("description"),
            ).value

        self.question_index += 1

    def reset(self) -> None:
        self.question_index = 0
        self.answers = {}
        self.symptom_type = None
