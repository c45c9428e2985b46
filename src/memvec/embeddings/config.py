# src/memvec/embeddings/config.py

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class EmbedFanOutConfig:
    """Configuration for concurrent per-record embedding.

    Immutable. Explicit arguments win; `from_env` fills the gaps from
    MEMVEC_EMBED_* environment variables.
    """

    max_concurrency: int = 8
    max_attempts: int = 3
    timeout: float = 30.0
    retry_on: tuple[type[Exception], ...] = (TimeoutError, ConnectionError)

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")

    @classmethod
    def from_env(
        cls,
        max_concurrency: int | None = None,
        max_attempts: int | None = None,
        timeout: float | None = None,
    ) -> "EmbedFanOutConfig":
        return cls(
            max_concurrency=int(
                _get_param_value(
                    max_concurrency, "MEMVEC_EMBED_MAX_CONCURRENCY", cls.max_concurrency
                )
            ),
            max_attempts=int(
                _get_param_value(
                    max_attempts, "MEMVEC_EMBED_MAX_ATTEMPTS", cls.max_attempts
                )
            ),
            timeout=_get_param_value(timeout, "MEMVEC_EMBED_TIMEOUT", cls.timeout),
        )


def _get_param_value(
    passed_value: float | None, env_var: str, default: float
) -> float:
    if passed_value is not None:
        return passed_value
    env_value = os.environ.get(env_var)
    if env_value is not None:
        return float(env_value)
    return default
