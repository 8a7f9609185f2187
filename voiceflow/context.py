"""Explicit bundle of the collaborators the HTTP layer works with."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from voiceflow.config.settings import Settings, settings as default_settings
from voiceflow.database import get_session_factory
from voiceflow.pipelines.recording import RecordingPipeline, RetryPolicy
from voiceflow.services.llm_client import get_llm_client
from voiceflow.services.offline_queue import JsonFileQueueStore, OfflineQueue, store_executor
from voiceflow.services.relational_store import RelationalStoreInterface, SqlAlchemyRelationalStore
from voiceflow.services.storage import S3ObjectStorage
from voiceflow.services.transcribe import get_transcribe_service

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    pipeline: RecordingPipeline
    store: RelationalStoreInterface
    offline_queue: OfflineQueue


def build_service_context(config: Optional[Settings] = None) -> ServiceContext:
    """Wire the AWS-backed providers, the database store and the offline queue."""

    config = config or default_settings
    store = SqlAlchemyRelationalStore(get_session_factory())
    pipeline = RecordingPipeline(
        S3ObjectStorage(config.s3.bucket_name, region=config.s3.region),
        get_transcribe_service(),
        get_llm_client(),
        store,
        retry_policy=RetryPolicy.from_config(config.pipeline),
        pipeline_config=config.pipeline,
        cost_config=config.costs,
    )
    queue = OfflineQueue(
        JsonFileQueueStore(config.offline_queue.path),
        store_executor(store),
        max_retries=config.offline_queue.max_retries,
    )
    logger.info(
        "Service context ready bucket=%s queue=%s",
        config.s3.bucket_name,
        config.offline_queue.path,
    )
    return ServiceContext(pipeline=pipeline, store=store, offline_queue=queue)


__all__ = ["ServiceContext", "build_service_context"]
