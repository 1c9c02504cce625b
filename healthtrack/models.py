from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from healthtrack.symptoms.severity import normalize_severity


class CamelModel(BaseModel):
    """Base for models whose wire form uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


# --- Callers ---

class CallerRole(str, Enum):
    PATIENT = "patient"
    PROVIDER = "provider"
    ADMIN = "admin"


class Caller(BaseModel):
    id: str
    role: CallerRole


# --- Symptoms ---

class SymptomType(str, Enum):
    PHYSICAL = "physical"
    MENTAL = "mental"
    EMOTIONAL = "emotional"
    OTHER = "other"


CANONICAL_SYMPTOM_TYPES = (
    SymptomType.PHYSICAL,
    SymptomType.MENTAL,
    SymptomType.EMOTIONAL,
)


def canonical_symptom_type(value: Any) -> SymptomType:
    """Map a stored type to one of the four known values; anything unknown is OTHER."""
    if isinstance(value, SymptomType):
        return value
    if isinstance(value, str):
        try:
            return SymptomType(value.strip().lower())
        except ValueError:
            return SymptomType.OTHER
    return SymptomType.OTHER


class SymptomRecord(CamelModel):
    id: str
    patient_id: str
    type: SymptomType = SymptomType.OTHER
    short_name: str = ""
    description: str = ""
    severity: int | None = None
    notes: str = ""
    created_at: datetime

    @field_validator("type", mode="before")
    @classmethod
    def _canonical_type(cls, value: Any) -> SymptomType:
        return canonical_symptom_type(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _normalized_severity(cls, value: Any) -> int | None:
        return normalize_severity(value)

    @field_validator("short_name", "description", "notes", mode="before")
    @classmethod
    def _text_default(cls, value: Any) -> Any:
        return _blank_if_none(value)

    @field_validator("created_at")
    @classmethod
    def _utc_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)


class SymptomInput(BaseModel):
    """Symptom write payload; accepts both current and legacy field names."""

    model_config = ConfigDict(populate_by_name=True)

    type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("type", "symptomType", "symptom_type"),
    )
    short_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("shortName", "short_name", "symptom"),
    )
    description: str | None = None
    severity: Any = Field(
        default=None,
        validation_alias=AliasChoices("severity", "severity_level", "severityLevel"),
    )
    notes: str | None = Field(
        default=None,
        validation_alias=AliasChoices("notes", "additional_notes", "additionalNotes"),
    )


class CompactSymptom(CamelModel):
    id: str
    type: SymptomType
    short_name: str
    description: str
    severity: int | None
    notes: str
    created_at: datetime


# --- Conversations ---

class MessageRole(str, Enum):
    PATIENT = "patient"
    ASSISTANT = "assistant"


class Message(CamelModel):
    role: MessageRole | None = None
    text: str | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _known_role(cls, value: Any) -> MessageRole | None:
        try:
            return MessageRole(value)
        except ValueError:
            return None

    @field_validator("text", mode="before")
    @classmethod
    def _string_text(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        return None


class ConversationThread(CamelModel):
    id: str
    patient_id: str
    messages: list[Message] = Field(default_factory=list)
    updated_at: datetime

    @field_validator("updated_at")
    @classmethod
    def _utc_updated_at(cls, value: datetime) -> datetime:
        return _as_utc(value)


class MessageInput(BaseModel):
    """A message submitted by a client; unlike ``Message`` nothing is coerced."""

    role: MessageRole
    text: str

    @field_validator("text")
    @classmethod
    def _non_blank_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message text must not be blank")
        return value


class ConversationInput(BaseModel):
    messages: list[MessageInput] = Field(default_factory=list)


# --- Health records ---

def clean_category_map(value: Any) -> dict[str, list[str]]:
    """Trim category names and values, drop blanks, de-duplicate values in order."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError("categories must be a mapping of category -> list of strings")

    result: dict[str, list[str]] = {}
    for raw_name, raw_values in value.items():
        name = str(raw_name).strip()
        if not name:
            continue
        if raw_values is None:
            raw_values = []
        elif isinstance(raw_values, Mapping):
            raise ValueError(f"category {name!r} must hold a list of strings")
        elif not isinstance(raw_values, (list, tuple)):
            # A lone value ("asthma", 5) is a one-item list.
            raw_values = [raw_values]

        bucket = result.setdefault(name, [])
        for raw in raw_values:
            item = str(raw).strip()
            if item and item not in bucket:
                bucket.append(item)
    return result


class HealthRecord(CamelModel):
    id: str
    patient_id: str
    recorded_at: datetime
    notes: str | None = None
    categories: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("categories", mode="before")
    @classmethod
    def _clean_categories(cls, value: Any) -> dict[str, list[str]]:
        return clean_category_map(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _trim_notes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("recorded_at")
    @classmethod
    def _utc_recorded_at(cls, value: datetime) -> datetime:
        return _as_utc(value)


class HealthRecordInput(CamelModel):
    recorded_at: datetime | None = None
    notes: str | None = None
    categories: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("categories", mode="before")
    @classmethod
    def _clean_categories(cls, value: Any) -> dict[str, list[str]]:
        return clean_category_map(value)


# --- Patient and provider profiles ---

def _string_ids(value: Any) -> list[str]:
    return [str(item) for item in value or []]


class PatientProfile(CamelModel):
    """Patient directory entry; credentials live with the auth gateway."""

    id: str
    name: str = ""
    email: str | None = None
    providers: list[str] = Field(default_factory=list)

    @field_validator("providers", mode="before")
    @classmethod
    def _provider_ids(cls, value: Any) -> list[str]:
        return _string_ids(value)


class ProviderProfile(CamelModel):
    id: str
    name: str = ""
    email: str | None = None
    patients: list[str] = Field(default_factory=list)

    @field_validator("patients", mode="before")
    @classmethod
    def _patient_ids(cls, value: Any) -> list[str]:
        return _string_ids(value)


class ProfileInput(CamelModel):
    name: str | None = None
    email: str | None = None


# --- Patient context payload ---

class TimelineBucket(CamelModel):
    date: str
    count: int
    avg_severity: float


class ContextSummary(CamelModel):
    total_symptoms: int
    avg_severity: float | None
    counts_by_type: dict[str, int]
    first_record_date: datetime | None
    last_record_date: datetime | None


class SymptomSection(CamelModel):
    timeline: list[TimelineBucket] = Field(default_factory=list)
    recent: list[CompactSymptom] = Field(default_factory=list)


class ConversationSection(CamelModel):
    total_threads: int
    total_messages_approx: int
    recent_messages: list[Message] = Field(default_factory=list)


class PatientContext(CamelModel):
    patient_id: str
    summary: ContextSummary
    symptoms: SymptomSection
    conversations: ConversationSection


# --- Reporting ---

class ClinicalReport(BaseModel):
    overview: str
    symptom_trends: str
    conversation_highlights: str
    follow_up_topics: list[str] = Field(default_factory=list)


# --- Intake WebSocket message types ---

class IntakeMessageType(str, Enum):
    SESSION_READY = "session_ready"
    NEXT_QUESTION = "next_question"
    CURRENT_QUESTION = "current_question"
    SESSION_COMPLETE = "session_complete"
    ERROR = "error"


class IntakeMessage(BaseModel):
    type: IntakeMessageType
    data: dict
