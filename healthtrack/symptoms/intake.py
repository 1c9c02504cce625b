"""Write-time normalization for patient symptom submissions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from healthtrack.errors import InputError, PermissionDenied
from healthtrack.models import (
    CANONICAL_SYMPTOM_TYPES,
    SymptomInput,
    SymptomRecord,
    SymptomType,
)
from healthtrack.symptoms.classifier import SymptomClassifier, default_classifier
from healthtrack.symptoms.severity import normalize_severity

logger = logging.getLogger(__name__)


def resolve_symptom_type(
    explicit: str | None,
    short_name: str | None,
    description: str | None,
    notes: str | None,
    classifier: SymptomClassifier = default_classifier,
) -> SymptomType:
    """Explicit type wins; blank means infer from the text."""
    if explicit is not None and explicit.strip():
        try:
            resolved = SymptomType(explicit.strip().lower())
        except ValueError:
            resolved = None
        if resolved not in CANONICAL_SYMPTOM_TYPES:
            raise InputError(
                f"Unsupported symptom type {explicit!r}; expected physical, mental or emotional.",
                message="Invalid symptom type",
            )
        return resolved
    return classifier.classify(short_name, description, notes)


def _required_severity(value: object) -> int:
    severity = normalize_severity(value)
    if severity is None:
        raise InputError(
            "Severity level must be a number from 1 to 10.",
            message="Symptom type and severity level are required",
        )
    return severity


def build_symptom_record(
    patient_id: str | None,
    payload: SymptomInput,
    classifier: SymptomClassifier = default_classifier,
    now: datetime | None = None,
) -> SymptomRecord:
    """Validate a submission and produce the record to persist."""
    if not patient_id:
        raise InputError("A patient identifier is required.", message="Missing patient")

    severity = _required_severity(payload.severity)
    symptom_type = resolve_symptom_type(
        payload.type,
        payload.short_name,
        payload.description,
        payload.notes,
        classifier,
    )
    if not (payload.type and payload.type.strip()):
        logger.info("Inferred symptom type %s for patient %s", symptom_type.value, patient_id)

    return SymptomRecord(
        id=uuid4().hex,
        patient_id=patient_id,
        type=symptom_type,
        short_name=(payload.short_name or "").strip(),
        description=(payload.description or "").strip(),
        severity=severity,
        notes=(payload.notes or "").strip(),
        created_at=now or datetime.now(timezone.utc),
    )


def ensure_owner(record: SymptomRecord, caller_id: str, action: str) -> None:
    if record.patient_id != caller_id:
        raise PermissionDenied(
            "Permission denied",
            message=f"Unauthorized to {action} this symptom",
        )


def apply_symptom_update(
    record: SymptomRecord,
    payload: SymptomInput,
    caller_id: str,
    classifier: SymptomClassifier = default_classifier,
) -> SymptomRecord:
    """Apply a partial owner edit; only fields present in the payload change."""
    ensure_owner(record, caller_id, "update")

    changes: dict[str, object] = {}
    provided = payload.model_fields_set
    for field in ("short_name", "description", "notes"):
        if field in provided:
            changes[field] = (getattr(payload, field) or "").strip()

    if "severity" in provided:
        changes["severity"] = _required_severity(payload.severity)

    if "type" in provided:
        changes["type"] = resolve_symptom_type(
            payload.type,
            changes.get("short_name", record.short_name),
            changes.get("description", record.description),
            changes.get("notes", record.notes),
            classifier,
        )

    return record.model_copy(update=changes)
