"""REST endpoints. Caller identity arrives as headers set by the auth gateway."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from openai import APIError
from pydantic import BaseModel, Field

from healthtrack import service
from healthtrack.errors import Unauthenticated, UpstreamError
from healthtrack.models import (
    Caller,
    CallerRole,
    ConversationInput,
    HealthRecordInput,
    ProfileInput,
    SymptomInput,
)
from healthtrack.reporting.prompts import build_session_instructions
from healthtrack.reporting.report_generator import generate_clinical_report
from healthtrack.storage.base import PatientStore

logger = logging.getLogger(__name__)

router = APIRouter()


def send_response(status: int, message: str, result: Any = None, error: str = "") -> JSONResponse:
    """Standard envelope: {status, message, result, error}."""
    return JSONResponse(
        status_code=status,
        content={
            "status": status,
            "message": message,
            "result": {} if result is None else result,
            "error": error,
        },
    )


def get_caller(
    x_caller_id: str | None = Header(default=None),
    x_caller_role: str | None = Header(default=None),
) -> Caller:
    if not x_caller_id or not x_caller_role:
        raise Unauthenticated("Missing caller identity")
    try:
        role = CallerRole(x_caller_role.strip().lower())
    except ValueError:
        raise Unauthenticated(f"Unknown caller role {x_caller_role!r}") from None
    return Caller(id=x_caller_id, role=role)


def get_store(request: Request) -> PatientStore:
    return request.app.state.store


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


class ProviderLinkInput(BaseModel):
    provider_id: str | None = Field(default=None, alias="providerId")


# --- Patient symptoms ---

@router.post("/patient/symptoms")
async def add_symptom(
    payload: SymptomInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    record = await service.add_symptom(store, caller, payload)
    return send_response(201, "Symptom added successfully", _dump(record))


@router.get("/patient/symptoms/history")
async def symptom_history(
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    records = await service.symptom_history(store, caller)
    return send_response(200, "Symptom history fetched", [_dump(r) for r in records])


@router.put("/patient/symptoms/{symptom_id}")
async def update_symptom(
    symptom_id: str,
    payload: SymptomInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    record = await service.update_symptom(store, caller, symptom_id, payload)
    return send_response(200, "Symptom updated successfully", _dump(record))


@router.delete("/patient/symptoms/{symptom_id}")
async def delete_symptom(
    symptom_id: str,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    await service.delete_symptom(store, caller, symptom_id)
    return send_response(200, "Symptom deleted successfully")


@router.post("/patient/providers")
async def link_provider(
    payload: ProviderLinkInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    providers = await service.link_provider(store, caller, payload.provider_id)
    return send_response(200, "Provider linked successfully", providers)


# --- Health records ---

@router.post("/patient/health-records")
async def add_health_record(
    payload: HealthRecordInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    record = await service.add_health_record(store, caller, payload)
    return send_response(201, "Health record saved", _dump(record))


@router.get("/patient/health-records")
async def list_health_records(
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    records = await service.list_health_records(store, caller)
    return send_response(200, "Health records fetched", [_dump(r) for r in records])


# --- Conversations ---

@router.post("/conversations")
async def add_conversation(
    payload: ConversationInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    thread = await service.add_conversation(store, caller, payload)
    return send_response(201, "Conversation saved", _dump(thread))


@router.get("/conversations")
async def list_conversations(
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    threads = await service.list_conversations(store, caller)
    return send_response(200, "Conversations fetched", [_dump(t) for t in threads])


# --- Provider views ---

@router.get("/provider/patients")
async def provider_patients(
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    patients = await service.provider_patients(store, caller)
    return send_response(
        200,
        "Patients linked to provider fetched successfully",
        [_dump(p) for p in patients],
    )


@router.post("/provider/patients")
async def create_patient(
    payload: ProfileInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    patient = await service.create_patient(store, caller, payload)
    return send_response(
        201,
        "Patient created and linked to provider successfully",
        {"patient": _dump(patient)},
    )


@router.get("/provider/patients/{patient_id}")
async def patient_profile(
    patient_id: str,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    patient = await service.patient_profile(store, caller, patient_id)
    return send_response(200, "Patient details fetched successfully", _dump(patient))


@router.get("/provider/patients/{patient_id}/symptoms")
async def patient_symptoms(
    patient_id: str,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    records = await service.patient_symptoms(store, caller, patient_id)
    return send_response(200, "Symptoms fetched successfully", [_dump(r) for r in records])


# --- Admin ---

@router.post("/admin/providers")
async def register_provider(
    payload: ProfileInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    provider = await service.register_provider(store, caller, payload)
    return send_response(201, "Provider registered", _dump(provider))


@router.post("/admin/patients")
async def register_patient(
    payload: ProfileInput,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    patient = await service.register_patient(store, caller, payload)
    return send_response(201, "Patient registered", _dump(patient))


# --- Context and reporting ---

@router.get("/patients/{patient_id}/context")
async def patient_context(
    patient_id: str,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    assembled = await service.build_patient_context(store, caller, patient_id)
    return send_response(
        200,
        "Patient context assembled",
        {
            "context": _dump(assembled.context),
            "length": assembled.length,
            "charBudget": assembled.char_budget,
            "decimationFactor": assembled.decimation_factor,
            "overBudget": assembled.over_budget,
        },
    )


@router.get("/patients/{patient_id}/session-instructions")
async def session_instructions(
    patient_id: str,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    assembled = await service.build_patient_context(store, caller, patient_id)
    return send_response(
        200,
        "Session instructions built",
        {"instructions": build_session_instructions(assembled.payload)},
    )


@router.post("/patients/{patient_id}/report")
async def patient_report(
    patient_id: str,
    caller: Caller = Depends(get_caller),
    store: PatientStore = Depends(get_store),
):
    assembled = await service.build_patient_context(store, caller, patient_id)
    try:
        report = await generate_clinical_report(assembled)
    except (RuntimeError, APIError) as exc:
        logger.error("Report generation failed for patient %s: %s", patient_id, exc)
        raise UpstreamError(str(exc)) from exc
    return send_response(200, "Report generated", report.model_dump())
