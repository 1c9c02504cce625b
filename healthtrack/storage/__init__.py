"""Store selection: MongoDB when a URI is configured, in-memory otherwise."""

import logging

from healthtrack.config import Settings
from healthtrack.storage.base import PatientStore
from healthtrack.storage.memory import InMemoryStore

logger = logging.getLogger(__name__)


def create_store(config: Settings) -> PatientStore:
    if not config.mongo_uri:
        logger.info("HT_MONGO_URI not set; using in-memory store")
        return InMemoryStore()

    from healthtrack.storage.mongo import MongoStore

    return MongoStore.from_uri(config.mongo_uri, config.mongo_db)


__all__ = ["PatientStore", "InMemoryStore", "create_store"]
