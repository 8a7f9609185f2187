"""Service layer helpers for external integrations."""

from .llm_client import BedrockLlmClient, LlmCompletion, LlmInvocationError, get_llm_client
from .offline_queue import (
    InMemoryQueueStore,
    JsonFileQueueStore,
    OfflineQueue,
    OperationType,
    QueuedOperation,
    ReplayReport,
    store_executor,
)
from .relational_store import (
    ConnectivityError,
    RecordNotFoundError,
    RelationalStoreError,
    RelationalStoreInterface,
    SqlAlchemyRelationalStore,
)
from .storage import S3ObjectStorage, StorageError, StoredObject
from .transcribe import (
    ProviderTranscript,
    TranscribeService,
    TranscriptionError,
    get_transcribe_service,
)

__all__ = [
    "BedrockLlmClient",
    "LlmCompletion",
    "LlmInvocationError",
    "get_llm_client",
    "InMemoryQueueStore",
    "JsonFileQueueStore",
    "OfflineQueue",
    "OperationType",
    "QueuedOperation",
    "ReplayReport",
    "store_executor",
    "ConnectivityError",
    "RecordNotFoundError",
    "RelationalStoreError",
    "RelationalStoreInterface",
    "SqlAlchemyRelationalStore",
    "S3ObjectStorage",
    "StorageError",
    "StoredObject",
    "ProviderTranscript",
    "TranscribeService",
    "TranscriptionError",
    "get_transcribe_service",
]
