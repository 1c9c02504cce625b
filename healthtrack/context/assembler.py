"""Build the size-bounded patient context payload handed to the report client."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from healthtrack.context.aggregator import aggregate_history
from healthtrack.context.flattener import flatten_conversations
from healthtrack.models import (
    CompactSymptom,
    ContextSummary,
    ConversationSection,
    ConversationThread,
    PatientContext,
    SymptomRecord,
    SymptomSection,
)

logger = logging.getLogger(__name__)

DEFAULT_RECENT_SLICE = 100
DEFAULT_MESSAGE_CAP = 1200
DEFAULT_CHAR_BUDGET = 180_000
DEFAULT_MIN_MESSAGES = 120
DEFAULT_MESSAGE_BASE = 600


@dataclass(frozen=True)
class AssembledContext:
    context: PatientContext
    payload: str
    length: int
    char_budget: int
    decimation_factor: int = 1

    @property
    def over_budget(self) -> bool:
        return self.length > self.char_budget


def serialize_context(context: PatientContext) -> str:
    """Canonical compact JSON form; the length of this string is what the budget measures."""
    return json.dumps(
        context.model_dump(mode="json", by_alias=True),
        ensure_ascii=False,
        separators=(",", ":"),
    )


def compact_symptom(record: SymptomRecord) -> CompactSymptom:
    return CompactSymptom(
        id=record.id,
        type=record.type,
        short_name=record.short_name,
        description=record.description,
        severity=record.severity,
        notes=record.notes,
        created_at=record.created_at,
    )


def decimate_context(
    context: PatientContext,
    factor: int,
    min_messages: int = DEFAULT_MIN_MESSAGES,
    message_base: int = DEFAULT_MESSAGE_BASE,
) -> PatientContext:
    """Keep every ``factor``-th timeline bucket and the last max(min, base // factor) messages."""
    if factor <= 1:
        return context

    timeline = [
        bucket for index, bucket in enumerate(context.symptoms.timeline) if index % factor == 0
    ]
    keep = max(min_messages, message_base // factor)
    messages = context.conversations.recent_messages
    if len(messages) > keep:
        messages = messages[-keep:]

    return context.model_copy(
        update={
            "symptoms": context.symptoms.model_copy(update={"timeline": timeline}),
            "conversations": context.conversations.model_copy(
                update={"recent_messages": list(messages)}
            ),
        }
    )


def build_context(
    patient_id: str,
    records_oldest_first: Sequence[SymptomRecord],
    threads_newest_first: Sequence[ConversationThread],
    recent_slice: int = DEFAULT_RECENT_SLICE,
    message_cap: int = DEFAULT_MESSAGE_CAP,
) -> PatientContext:
    """Build the full, undecimated context."""
    history = aggregate_history(records_oldest_first)
    recent = list(records_oldest_first[-recent_slice:]) if recent_slice > 0 else []
    messages = flatten_conversations(threads_newest_first, message_cap)

    return PatientContext(
        patient_id=patient_id,
        summary=ContextSummary(
            total_symptoms=history.total,
            avg_severity=history.avg_severity,
            counts_by_type=history.counts_by_type,
            first_record_date=history.first_record_date,
            last_record_date=history.last_record_date,
        ),
        symptoms=SymptomSection(
            timeline=history.timeline,
            recent=[compact_symptom(record) for record in recent],
        ),
        conversations=ConversationSection(
            total_threads=len(threads_newest_first),
            total_messages_approx=len(messages),
            recent_messages=messages,
        ),
    )


def assemble_context(
    patient_id: str,
    records_oldest_first: Sequence[SymptomRecord],
    threads_newest_first: Sequence[ConversationThread],
    recent_slice: int = DEFAULT_RECENT_SLICE,
    message_cap: int = DEFAULT_MESSAGE_CAP,
    char_budget: int = DEFAULT_CHAR_BUDGET,
    min_messages: int = DEFAULT_MIN_MESSAGES,
    message_base: int = DEFAULT_MESSAGE_BASE,
) -> AssembledContext:
    """Assemble the patient context and apply at most one decimation pass.

    The result may still exceed ``char_budget``; check ``over_budget`` when a
    hard ceiling matters.
    """
    if char_budget <= 0:
        raise ValueError("char_budget must be positive.")

    context = build_context(
        patient_id,
        records_oldest_first,
        threads_newest_first,
        recent_slice=recent_slice,
        message_cap=message_cap,
    )
    payload = serialize_context(context)
    length = len(payload)
    if length <= char_budget:
        return AssembledContext(context=context, payload=payload, length=length, char_budget=char_budget)

    factor = math.ceil(length / char_budget)
    reduced = decimate_context(context, factor, min_messages=min_messages, message_base=message_base)
    reduced_payload = serialize_context(reduced)
    result = AssembledContext(
        context=reduced,
        payload=reduced_payload,
        length=len(reduced_payload),
        char_budget=char_budget,
        decimation_factor=factor,
    )
    logger.info(
        "Decimated context for patient %s by factor %s (%s -> %s chars)",
        patient_id,
        factor,
        length,
        result.length,
    )
    if result.over_budget:
        logger.warning(
            "Context for patient %s still over budget after decimation (%s > %s chars)",
            patient_id,
            result.length,
            char_budget,
        )
    return result
