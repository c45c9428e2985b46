# src/memvec/embeddings/fanout.py

"""Concurrent per-record embedding, joined before anything is upserted."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from time import monotonic
from typing import Any, TypeVar

from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from memvec.observability import names
from memvec.observability.base import MetricsHook, NoOpMetricsHook

from .base import EmbeddingFailure, EmbeddingsClient, FanOutResult
from .config import EmbedFanOutConfig

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


async def embed_records(
    records: Sequence[RecordT],
    client: EmbeddingsClient,
    *,
    source_field: str,
    vector_field: str,
    config: EmbedFanOutConfig | None = None,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> FanOutResult[RecordT]:
    """
    Embed the text of each record concurrently and attach the vectors.

    One task is started per record (at most `config.max_concurrency` in
    flight) and all of them are joined before returning. A failure for one
    record does not affect the others; it is reported in `failures`.

    Args:
        records: Mapping records or pydantic model instances.
        client: Embedder; called with a single text per record.
        source_field: Field holding the text to embed.
        vector_field: Field that receives the vector.
        config: Concurrency, retry, and timeout settings.
        metrics_hook: Hook for recording metrics.

    Returns:
        FanOutResult with embedded copies of the successful records, in
        input order, and one EmbeddingFailure per failed record.
    """
    config = config or EmbedFanOutConfig()
    if not records:
        logger.debug("Empty input, returning empty result")
        return FanOutResult()

    start = monotonic()
    semaphore = asyncio.Semaphore(config.max_concurrency)
    logger.info(
        "Embedding %d records with max_concurrency=%d",
        len(records),
        config.max_concurrency,
    )

    async def _embed_one(record: RecordT) -> RecordT:
        text = _read_field(record, source_field)
        if not isinstance(text, str):
            raise TypeError(
                f"Field '{source_field}' must be a string, got {type(text).__name__}"
            )
        async with semaphore:
            vector = await _embed_with_retry(client, text, config)
        return _with_field(record, vector_field, vector)

    outcomes = await asyncio.gather(
        *[_embed_one(record) for record in records], return_exceptions=True
    )

    result: FanOutResult[RecordT] = FanOutResult()
    for index, (record, outcome) in enumerate(zip(records, outcomes)):
        if isinstance(outcome, Exception):
            logger.warning("Embedding failed for record %d: %s", index, outcome)
            metrics_hook.increment(names.EMBEDDINGS_ERRORS_TOTAL)
            result.failures.append(
                EmbeddingFailure(index=index, record=record, error=outcome)
            )
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            result.records.append(outcome)

    elapsed_ms = 1000 * (monotonic() - start)
    metrics_hook.record_latency(names.EMBEDDINGS_FANOUT_DURATION, elapsed_ms)
    metrics_hook.increment(names.EMBEDDINGS_REQUESTS_TOTAL, value=len(records))
    logger.info(
        "Embedded %d records, %d failed", len(result.records), len(result.failures)
    )
    return result


async def _embed_with_retry(
    client: EmbeddingsClient, text: str, config: EmbedFanOutConfig
) -> list[float]:
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(config.retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            embeddings = await asyncio.wait_for(
                client.embed([text]), timeout=config.timeout
            )
            if len(embeddings) != 1:
                raise ValueError(
                    f"Embedder returned {len(embeddings)} embeddings for one text"
                )
            return list(embeddings[0].vector)
    raise AssertionError("unreachable")


def _read_field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _with_field(record: RecordT, name: str, value: list[float]) -> RecordT:
    if isinstance(record, BaseModel):
        updated: RecordT = record.model_copy(update={name: value})
        return updated
    if isinstance(record, Mapping):
        return {**record, name: value}  # type: ignore[return-value]
    raise TypeError(f"Unsupported record type: {type(record).__name__}")
