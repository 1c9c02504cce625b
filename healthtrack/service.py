"""Request-scoped operations shared by the HTTP and WebSocket handlers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from healthtrack.config import Settings, settings
from healthtrack.context.assembler import AssembledContext, assemble_context
from healthtrack.errors import ConflictError, InputError, NotFoundError, PermissionDenied
from healthtrack.models import (
    Caller,
    CallerRole,
    ConversationInput,
    ConversationThread,
    HealthRecord,
    HealthRecordInput,
    Message,
    PatientProfile,
    ProfileInput,
    ProviderProfile,
    SymptomInput,
    SymptomRecord,
)
from healthtrack.storage.base import PatientStore
from healthtrack.symptoms.intake import apply_symptom_update, build_symptom_record, ensure_owner

logger = logging.getLogger(__name__)


def require_patient(caller: Caller) -> str:
    if caller.role is not CallerRole.PATIENT:
        raise PermissionDenied("Only patients can access this route")
    return caller.id


def require_provider(caller: Caller) -> str:
    if caller.role is not CallerRole.PROVIDER:
        raise PermissionDenied("Only providers can access this route")
    return caller.id


def require_admin(caller: Caller) -> str:
    if caller.role is not CallerRole.ADMIN:
        raise PermissionDenied("Only admins can access this route")
    return caller.id


async def authorize_patient_access(store: PatientStore, caller: Caller, patient_id: str) -> None:
    """Patients see their own data, admins everything, providers their linked patients."""
    if caller.role is CallerRole.ADMIN:
        return
    if caller.role is CallerRole.PATIENT and caller.id == patient_id:
        return
    if caller.role is CallerRole.PROVIDER and await store.is_provider_linked(caller.id, patient_id):
        return
    raise PermissionDenied(f"{caller.role.value} {caller.id} may not access patient {patient_id}")


async def build_patient_context(
    store: PatientStore,
    caller: Caller,
    patient_id: str | None,
    config: Settings = settings,
) -> AssembledContext:
    if not patient_id:
        raise InputError("A patient identifier is required.", message="Missing patient")
    await authorize_patient_access(store, caller, patient_id)

    records = await store.list_symptoms(patient_id)
    threads = await store.list_conversations(patient_id)
    return assemble_context(
        patient_id,
        records,
        threads,
        recent_slice=config.context_recent_slice,
        message_cap=config.context_message_cap,
        char_budget=config.context_char_budget,
        min_messages=config.context_min_messages,
        message_base=config.context_message_base,
    )


# --- Symptoms ---

async def add_symptom(store: PatientStore, caller: Caller, payload: SymptomInput) -> SymptomRecord:
    patient_id = require_patient(caller)
    record = build_symptom_record(patient_id, payload)
    return await store.add_symptom(record)


async def symptom_history(store: PatientStore, caller: Caller) -> list[SymptomRecord]:
    patient_id = require_patient(caller)
    records = await store.list_symptoms(patient_id)
    return list(reversed(records))


async def _owned_symptom(store: PatientStore, symptom_id: str) -> SymptomRecord:
    record = await store.get_symptom(symptom_id)
    if record is None:
        raise NotFoundError("Invalid symptom ID", message="Symptom not found")
    return record


async def update_symptom(
    store: PatientStore,
    caller: Caller,
    symptom_id: str,
    payload: SymptomInput,
) -> SymptomRecord:
    patient_id = require_patient(caller)
    record = await _owned_symptom(store, symptom_id)
    updated = apply_symptom_update(record, payload, patient_id)
    return await store.update_symptom(updated)


async def delete_symptom(store: PatientStore, caller: Caller, symptom_id: str) -> None:
    patient_id = require_patient(caller)
    record = await _owned_symptom(store, symptom_id)
    ensure_owner(record, patient_id, "delete")
    await store.delete_symptom(symptom_id)


# --- Conversations ---

async def add_conversation(
    store: PatientStore,
    caller: Caller,
    payload: ConversationInput,
) -> ConversationThread:
    patient_id = require_patient(caller)
    if not payload.messages:
        raise InputError("No messages provided", message="Invalid conversation")
    thread = ConversationThread(
        id=uuid4().hex,
        patient_id=patient_id,
        messages=[Message(role=m.role, text=m.text) for m in payload.messages],
        updated_at=datetime.now(timezone.utc),
    )
    return await store.add_conversation(thread)


async def list_conversations(store: PatientStore, caller: Caller) -> list[ConversationThread]:
    patient_id = require_patient(caller)
    return await store.list_conversations(patient_id)


# --- Health records ---

async def add_health_record(
    store: PatientStore,
    caller: Caller,
    payload: HealthRecordInput,
) -> HealthRecord:
    patient_id = require_patient(caller)
    record = HealthRecord(
        id=uuid4().hex,
        patient_id=patient_id,
        recorded_at=payload.recorded_at or datetime.now(timezone.utc),
        notes=payload.notes,
        categories=payload.categories,
    )
    return await store.add_health_record(record)


async def list_health_records(store: PatientStore, caller: Caller) -> list[HealthRecord]:
    patient_id = require_patient(caller)
    return await store.list_health_records(patient_id)


# --- Provider links ---

async def link_provider(store: PatientStore, caller: Caller, provider_id: str | None) -> list[str]:
    """Link a registered provider to the calling patient; returns the patient's providers."""
    patient_id = require_patient(caller)
    if not provider_id:
        raise InputError("Invalid provider ID", message="Provider is required")
    if await store.get_provider(provider_id) is None:
        raise NotFoundError("Invalid provider ID", message="Provider not found")
    if await store.get_patient(patient_id) is None:
        raise NotFoundError("Invalid patient ID", message="Patient not found")
    if not await store.link_provider(patient_id, provider_id):
        raise InputError("Provider is already linked", message="Provider already added")
    logger.info("Linked provider %s to patient %s", provider_id, patient_id)
    patient = await store.get_patient(patient_id)
    return patient.providers if patient else [provider_id]


# --- Provider views ---

async def _registered_provider(store: PatientStore, caller: Caller) -> ProviderProfile:
    provider = await store.get_provider(require_provider(caller))
    if provider is None:
        raise NotFoundError("Invalid provider ID", message="Provider not found")
    return provider


async def provider_patients(store: PatientStore, caller: Caller) -> list[PatientProfile]:
    provider = await _registered_provider(store, caller)
    return await store.list_provider_patients(provider.id)


async def _new_patient(store: PatientStore, payload: ProfileInput) -> PatientProfile:
    name = (payload.name or "").strip()
    email = (payload.email or "").strip().lower()
    if not name or not email:
        raise InputError("Missing fields", message="Name and email are required")
    if await store.find_patient_by_email(email) is not None:
        raise ConflictError("Patient already registered", message="Email already exists")
    return await store.add_patient(PatientProfile(id=uuid4().hex, name=name, email=email))


async def create_patient(store: PatientStore, caller: Caller, payload: ProfileInput) -> PatientProfile:
    """Register a patient on behalf of a provider and link the two."""
    provider = await _registered_provider(store, caller)
    patient = await _new_patient(store, payload)
    await store.link_provider(patient.id, provider.id)
    logger.info("Provider %s created patient %s", provider.id, patient.id)
    return await store.get_patient(patient.id) or patient


async def patient_profile(store: PatientStore, caller: Caller, patient_id: str) -> PatientProfile:
    require_provider(caller)
    await authorize_patient_access(store, caller, patient_id)
    patient = await store.get_patient(patient_id)
    if patient is None:
        raise NotFoundError("Patient not found", message="Patient not found")
    return patient


async def patient_symptoms(store: PatientStore, caller: Caller, patient_id: str) -> list[SymptomRecord]:
    require_provider(caller)
    await authorize_patient_access(store, caller, patient_id)
    records = await store.list_symptoms(patient_id)
    if not records:
        raise NotFoundError("No symptoms available", message="No symptoms found for this patient")
    return records


# --- Admin ---

async def register_provider(store: PatientStore, caller: Caller, payload: ProfileInput) -> ProviderProfile:
    require_admin(caller)
    name = (payload.name or "").strip()
    if not name:
        raise InputError("Missing fields", message="Name is required")
    provider = ProviderProfile(
        id=uuid4().hex,
        name=name,
        email=(payload.email or "").strip().lower() or None,
    )
    return await store.add_provider(provider)


async def register_patient(store: PatientStore, caller: Caller, payload: ProfileInput) -> PatientProfile:
    require_admin(caller)
    return await _new_patient(store, payload)
