"""Process-local store used when no MongoDB URI is configured, and in tests."""

from __future__ import annotations

from healthtrack.models import (
    ConversationThread,
    HealthRecord,
    PatientProfile,
    ProviderProfile,
    SymptomRecord,
)
from healthtrack.storage.base import PatientStore


class InMemoryStore(PatientStore):
    def __init__(self) -> None:
        self._symptoms: dict[str, SymptomRecord] = {}
        self._conversations: dict[str, ConversationThread] = {}
        self._health_records: dict[str, HealthRecord] = {}
        self._patients: dict[str, PatientProfile] = {}
        self._providers: dict[str, ProviderProfile] = {}

    async def add_symptom(self, record: SymptomRecord) -> SymptomRecord:
        self._symptoms[record.id] = record
        return record

    async def get_symptom(self, symptom_id: str) -> SymptomRecord | None:
        return self._symptoms.get(symptom_id)

    async def update_symptom(self, record: SymptomRecord) -> SymptomRecord:
        self._symptoms[record.id] = record
        return record

    async def delete_symptom(self, symptom_id: str) -> bool:
        return self._symptoms.pop(symptom_id, None) is not None

    async def list_symptoms(self, patient_id: str) -> list[SymptomRecord]:
        owned = [r for r in self._symptoms.values() if r.patient_id == patient_id]
        return sorted(owned, key=lambda r: (r.created_at, r.id))

    async def add_conversation(self, thread: ConversationThread) -> ConversationThread:
        self._conversations[thread.id] = thread
        return thread

    async def list_conversations(self, patient_id: str) -> list[ConversationThread]:
        owned = [t for t in self._conversations.values() if t.patient_id == patient_id]
        return sorted(sorted(owned, key=lambda t: t.id), key=lambda t: t.updated_at, reverse=True)

    async def add_health_record(self, record: HealthRecord) -> HealthRecord:
        self._health_records[record.id] = record
        return record

    async def list_health_records(self, patient_id: str) -> list[HealthRecord]:
        owned = [r for r in self._health_records.values() if r.patient_id == patient_id]
        return sorted(sorted(owned, key=lambda r: r.id), key=lambda r: r.recorded_at, reverse=True)

    async def add_patient(self, profile: PatientProfile) -> PatientProfile:
        self._patients[profile.id] = profile
        return profile

    async def get_patient(self, patient_id: str) -> PatientProfile | None:
        return self._patients.get(patient_id)

    async def find_patient_by_email(self, email: str) -> PatientProfile | None:
        for profile in self._patients.values():
            if profile.email == email:
                return profile
        return None

    async def add_provider(self, profile: ProviderProfile) -> ProviderProfile:
        self._providers[profile.id] = profile
        return profile

    async def get_provider(self, provider_id: str) -> ProviderProfile | None:
        return self._providers.get(provider_id)

    async def list_provider_patients(self, provider_id: str) -> list[PatientProfile]:
        return [p for p in self._patients.values() if provider_id in p.providers]

    async def link_provider(self, patient_id: str, provider_id: str) -> bool:
        patient = self._patients.get(patient_id)
        if patient is None or provider_id in patient.providers:
            return False
        self._patients[patient_id] = patient.model_copy(
            update={"providers": [*patient.providers, provider_id]}
        )
        provider = self._providers.get(provider_id)
        if provider is not None and patient_id not in provider.patients:
            self._providers[provider_id] = provider.model_copy(
                update={"patients": [*provider.patients, patient_id]}
            )
        return True

    async def is_provider_linked(self, provider_id: str, patient_id: str) -> bool:
        patient = self._patients.get(patient_id)
        return patient is not None and provider_id in patient.providers
