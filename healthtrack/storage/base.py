"""Storage interface for patient-owned collections."""

from __future__ import annotations

from abc import ABC, abstractmethod

from healthtrack.models import (
    ConversationThread,
    HealthRecord,
    PatientProfile,
    ProviderProfile,
    SymptomRecord,
)


class PatientStore(ABC):
    """Async read/write access to patient-owned records and the patient/provider directory.

    ``list_symptoms`` returns oldest first; ``list_conversations`` returns the
    most recently updated thread first. I/O errors propagate to the caller.
    """

    @abstractmethod
    async def add_symptom(self, record: SymptomRecord) -> SymptomRecord: ...

    @abstractmethod
    async def get_symptom(self, symptom_id: str) -> SymptomRecord | None: ...

    @abstractmethod
    async def update_symptom(self, record: SymptomRecord) -> SymptomRecord: ...

    @abstractmethod
    async def delete_symptom(self, symptom_id: str) -> bool: ...

    @abstractmethod
    async def list_symptoms(self, patient_id: str) -> list[SymptomRecord]: ...

    @abstractmethod
    async def add_conversation(self, thread: ConversationThread) -> ConversationThread: ...

    @abstractmethod
    async def list_conversations(self, patient_id: str) -> list[ConversationThread]: ...

    @abstractmethod
    async def add_health_record(self, record: HealthRecord) -> HealthRecord: ...

    @abstractmethod
    async def list_health_records(self, patient_id: str) -> list[HealthRecord]: ...

    @abstractmethod
    async def add_patient(self, profile: PatientProfile) -> PatientProfile: ...

    @abstractmethod
    async def get_patient(self, patient_id: str) -> PatientProfile | None: ...

    @abstractmethod
    async def find_patient_by_email(self, email: str) -> PatientProfile | None: ...

    @abstractmethod
    async def add_provider(self, profile: ProviderProfile) -> ProviderProfile: ...

    @abstractmethod
    async def get_provider(self, provider_id: str) -> ProviderProfile | None: ...

    @abstractmethod
    async def list_provider_patients(self, provider_id: str) -> list[PatientProfile]:
        """Patients whose provider list contains ``provider_id``."""

    @abstractmethod
    async def link_provider(self, patient_id: str, provider_id: str) -> bool:
        """Link an existing provider to an existing patient.

        Returns False when the link already existed, in any stored id form.
        Never creates the patient.
        """

    @abstractmethod
    async def is_provider_linked(self, provider_id: str, patient_id: str) -> bool: ...

    async def close(self) -> None:
        return None
