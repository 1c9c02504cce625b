"""MongoDB-backed store (motor), reading the legacy document layout.

Symptom documents use ``symptom_type``, ``symptom``, ``severity_level`` and
``additional_notes``; every owned document points at its patient through a
``patient`` field that may hold an ObjectId or a string id.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from healthtrack.models import (
    ConversationThread,
    HealthRecord,
    PatientProfile,
    ProviderProfile,
    SymptomRecord,
)
from healthtrack.storage.base import PatientStore
from healthtrack.symptoms.classifier import SymptomClassifier, default_classifier

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NO_PASSWORD = {"password": 0}


def _id_variants(value: str) -> list[Any]:
    """Match a string id and, when it looks like one, its ObjectId form."""
    variants: list[Any] = [value]
    if ObjectId.is_valid(value):
        variants.append(ObjectId(value))
    return variants


def _id_filter(value: str) -> dict[str, Any]:
    return {"$in": _id_variants(value)}


def _native_id(value: str) -> Any:
    """Store references as ObjectId when the id has that shape, like legacy rows do."""
    return ObjectId(value) if ObjectId.is_valid(value) else value


def _timestamp(doc: dict, *keys: str) -> datetime:
    for key in keys:
        value = doc.get(key)
        if isinstance(value, datetime):
            return value
    doc_id = doc.get("_id")
    if isinstance(doc_id, ObjectId):
        return doc_id.generation_time
    return _EPOCH


def symptom_from_document(
    doc: dict,
    classifier: SymptomClassifier = default_classifier,
) -> SymptomRecord:
    short_name = doc.get("symptom") or ""
    description = doc.get("description") or ""
    notes = doc.get("additional_notes") or ""
    stored_type = doc.get("symptom_type")
    if not (isinstance(stored_type, str) and stored_type.strip()):
        # Legacy rows written before the type was required.
        stored_type = classifier.classify(short_name, description, notes)

    return SymptomRecord(
        id=str(doc["_id"]),
        patient_id=str(doc.get("patient", "")),
        type=stored_type,
        short_name=short_name,
        description=description,
        severity=doc.get("severity_level"),
        notes=notes,
        created_at=_timestamp(doc, "createdAt"),
    )


def symptom_to_document(record: SymptomRecord) -> dict:
    return {
        "_id": record.id,
        "patient": record.patient_id,
        "symptom_type": record.type.value,
        "symptom": record.short_name,
        "description": record.description,
        "severity_level": record.severity,
        "additional_notes": record.notes,
        "createdAt": record.created_at,
        "updatedAt": datetime.now(timezone.utc),
    }


def conversation_from_document(doc: dict) -> ConversationThread:
    messages = [m for m in doc.get("messages") or [] if isinstance(m, dict)]
    return ConversationThread(
        id=str(doc["_id"]),
        patient_id=str(doc.get("patient", "")),
        messages=[{"role": m.get("role"), "text": m.get("text")} for m in messages],
        updated_at=_timestamp(doc, "updatedAt", "createdAt"),
    )


def conversation_to_document(thread: ConversationThread) -> dict:
    return {
        "_id": thread.id,
        "patient": thread.patient_id,
        "messages": [
            {"role": m.role.value if m.role else None, "text": m.text}
            for m in thread.messages
        ],
        "createdAt": thread.updated_at,
        "updatedAt": thread.updated_at,
    }


def health_record_from_document(doc: dict) -> HealthRecord:
    return HealthRecord(
        id=str(doc["_id"]),
        patient_id=str(doc.get("patient", "")),
        recorded_at=_timestamp(doc, "recordedAt", "createdAt"),
        notes=doc.get("notes"),
        categories=doc.get("categories") or {},
    )


def health_record_to_document(record: HealthRecord) -> dict:
    return {
        "_id": record.id,
        "patient": record.patient_id,
        "recordedAt": record.recorded_at,
        "notes": record.notes,
        "categories": record.categories,
    }


def patient_from_document(doc: dict) -> PatientProfile:
    return PatientProfile(
        id=str(doc["_id"]),
        name=doc.get("fullName") or doc.get("name") or "",
        email=doc.get("email"),
        providers=doc.get("providers") or [],
    )


def patient_to_document(profile: PatientProfile) -> dict:
    return {
        "_id": profile.id,
        "fullName": profile.name,
        "name": profile.name,
        "email": profile.email,
        "providers": [_native_id(p) for p in profile.providers],
    }


def provider_from_document(doc: dict) -> ProviderProfile:
    return ProviderProfile(
        id=str(doc["_id"]),
        name=doc.get("name") or "",
        email=doc.get("email"),
        patients=doc.get("patients") or [],
    )


def provider_to_document(profile: ProviderProfile) -> dict:
    return {
        "_id": profile.id,
        "name": profile.name,
        "email": profile.email,
        "patients": [_native_id(p) for p in profile.patients],
    }


class MongoStore(PatientStore):
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        client: AsyncIOMotorClient | None = None,
        classifier: SymptomClassifier = default_classifier,
    ) -> None:
        self.db = db
        self.client = client
        self.classifier = classifier

    @classmethod
    def from_uri(cls, uri: str, db_name: str | None = None) -> MongoStore:
        client = AsyncIOMotorClient(uri, tz_aware=True)
        db = client[db_name] if db_name else client.get_default_database()
        logger.info("Using MongoDB database %s", db.name)
        return cls(db, client=client)

    async def close(self) -> None:
        if self.client is not None:
            self.client.close()

    async def add_symptom(self, record: SymptomRecord) -> SymptomRecord:
        await self.db.symptoms.insert_one(symptom_to_document(record))
        return record

    async def get_symptom(self, symptom_id: str) -> SymptomRecord | None:
        doc = await self.db.symptoms.find_one({"_id": _id_filter(symptom_id)})
        return symptom_from_document(doc, self.classifier) if doc else None

    async def update_symptom(self, record: SymptomRecord) -> SymptomRecord:
        doc = symptom_to_document(record)
        doc.pop("_id")
        await self.db.symptoms.update_one({"_id": _id_filter(record.id)}, {"$set": doc})
        return record

    async def delete_symptom(self, symptom_id: str) -> bool:
        result = await self.db.symptoms.delete_one({"_id": _id_filter(symptom_id)})
        return result.deleted_count > 0

    async def list_symptoms(self, patient_id: str) -> list[SymptomRecord]:
        cursor = self.db.symptoms.find({"patient": _id_filter(patient_id)}).sort(
            [("createdAt", 1), ("_id", 1)]
        )
        docs = await cursor.to_list(length=None)
        return [symptom_from_document(doc, self.classifier) for doc in docs]

    async def add_conversation(self, thread: ConversationThread) -> ConversationThread:
        await self.db.conversations.insert_one(conversation_to_document(thread))
        return thread

    async def list_conversations(self, patient_id: str) -> list[ConversationThread]:
        cursor = self.db.conversations.find({"patient": _id_filter(patient_id)}).sort(
            [("updatedAt", -1), ("_id", 1)]
        )
        docs = await cursor.to_list(length=None)
        return [conversation_from_document(doc) for doc in docs]

    async def add_health_record(self, record: HealthRecord) -> HealthRecord:
        await self.db.health_records.insert_one(health_record_to_document(record))
        return record

    async def list_health_records(self, patient_id: str) -> list[HealthRecord]:
        cursor = self.db.health_records.find({"patient": _id_filter(patient_id)}).sort(
            [("recordedAt", -1), ("_id", 1)]
        )
        docs = await cursor.to_list(length=None)
        return [health_record_from_document(doc) for doc in docs]

    async def add_patient(self, profile: PatientProfile) -> PatientProfile:
        await self.db.patients.insert_one(patient_to_document(profile))
        return profile

    async def get_patient(self, patient_id: str) -> PatientProfile | None:
        doc = await self.db.patients.find_one({"_id": _id_filter(patient_id)}, projection=_NO_PASSWORD)
        return patient_from_document(doc) if doc else None

    async def find_patient_by_email(self, email: str) -> PatientProfile | None:
        doc = await self.db.patients.find_one({"email": email}, projection=_NO_PASSWORD)
        return patient_from_document(doc) if doc else None

    async def add_provider(self, profile: ProviderProfile) -> ProviderProfile:
        await self.db.providers.insert_one(provider_to_document(profile))
        return profile

    async def get_provider(self, provider_id: str) -> ProviderProfile | None:
        doc = await self.db.providers.find_one({"_id": _id_filter(provider_id)}, projection=_NO_PASSWORD)
        return provider_from_document(doc) if doc else None

    async def list_provider_patients(self, provider_id: str) -> list[PatientProfile]:
        cursor = self.db.patients.find(
            {"providers": _id_filter(provider_id)},
            projection=_NO_PASSWORD,
        ).sort([("_id", 1)])
        docs = await cursor.to_list(length=None)
        return [patient_from_document(doc) for doc in docs]

    async def link_provider(self, patient_id: str, provider_id: str) -> bool:
        # Matches only when neither id form is already linked, so legacy
        # ObjectId entries count as existing links.
        result = await self.db.patients.update_one(
            {"_id": _id_filter(patient_id), "providers": {"$nin": _id_variants(provider_id)}},
            {"$push": {"providers": _native_id(provider_id)}},
        )
        if result.modified_count == 0:
            return False
        await self.db.providers.update_one(
            {"_id": _id_filter(provider_id)},
            {"$addToSet": {"patients": _native_id(patient_id)}},
        )
        return True

    async def is_provider_linked(self, provider_id: str, patient_id: str) -> bool:
        doc = await self.db.patients.find_one(
            {"_id": _id_filter(patient_id), "providers": _id_filter(provider_id)},
            projection={"_id": 1},
        )
        return doc is not None
