"""Persistence — KeyValueStore, DraftStore, SubmissionRepository, BlobStore."""

from requirements_portal.persistence.kv_store import (
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    StorageQuotaExceeded,
    create_store,
)
from requirements_portal.persistence.draft_store import DraftStore
from requirements_portal.persistence.submission_repository import SubmissionRepository
from requirements_portal.persistence.blob_store import BlobStore

__all__ = [
    "BlobStore",
    "DraftStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "StorageQuotaExceeded",
    "SubmissionRepository",
    "create_store",
]
