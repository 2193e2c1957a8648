"""
Embedding generation via the OpenAI embeddings API.
"""

import math
import time
from typing import List, Optional

import openai
from openai import OpenAI

from meeting_knowledge.agents.base_agent import AgentProcessingError, MalformedResponseError
from meeting_knowledge.config import get_settings
from meeting_knowledge.utils.logger import get_logger
from meeting_knowledge.utils.retry import CircuitBreaker, CircuitOpenError, RetryPolicy

logger = get_logger(__name__)
settings = get_settings()

TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,  # includes APITimeoutError
    openai.InternalServerError,
)


class EmbeddingService:
    """
    Generates fixed-length embedding vectors for text.

    Every vector returned has exactly ``dimensions`` finite float entries;
    any other answer is a MalformedResponseError.
    """

    def __init__(
        self,
        circuit_breaker: Optional[CircuitBreaker] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        """Initialize the OpenAI client."""
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY environment variable is required")

        self.client: OpenAI = OpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.inference_timeout_seconds,
            max_retries=0,
        )
        self.model: str = settings.embedding_model
        self.dimensions: int = settings.embedding_dimensions
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            recovery_timeout=settings.circuit_breaker_recovery_timeout,
        )
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.inference_max_attempts,
            base_delay=settings.inference_base_delay,
            max_delay=settings.inference_max_delay,
            retry_on=TRANSIENT_ERRORS,
        )

    def embed_text(self, text: str) -> List[float]:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector of length ``self.dimensions``

        Raises:
            AgentProcessingError: If the API call fails
            MalformedResponseError: If the vector has the wrong shape
        """
        if not text or not text.strip():
            raise AgentProcessingError("Cannot embed empty text")

        start_time = time.time()
        try:
            response = self.circuit_breaker.call(
                self.retry_policy.execute,
                self.client.embeddings.create,
                operation="embedding",
                input=text.strip(),
                model=self.model,
                dimensions=self.dimensions,
            )
        except CircuitOpenError as e:
            logger.error("Embedding call rejected", error=str(e))
            raise AgentProcessingError(str(e)) from e
        except openai.APIError as e:
            logger.error("OpenAI embedding API error",
                         error=str(e),
                         error_type=type(e).__name__,
                         duration_seconds=round(time.time() - start_time, 2))
            raise AgentProcessingError(f"OpenAI API error: {str(e)}") from e
        except Exception as e:
            logger.error("Unexpected error generating embedding",
                         error=str(e),
                         duration_seconds=round(time.time() - start_time, 2))
            raise AgentProcessingError(f"Unexpected error: {str(e)}") from e

        if not response.data:
            raise MalformedResponseError("Empty response from embeddings API")

        vector = self._validate_vector(response.data[0].embedding)

        logger.info("Embedding generated",
                    model=self.model,
                    dimensions=len(vector),
                    duration_seconds=round(time.time() - start_time, 2))

        return vector

    def _validate_vector(self, vector: object) -> List[float]:
        """Check the embedding is a list of finite numbers of the configured length."""
        if not isinstance(vector, list):
            raise MalformedResponseError(f"Embedding must be a list, got {type(vector).__name__}")
        if len(vector) != self.dimensions:
            raise MalformedResponseError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        for value in vector:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise MalformedResponseError("Embedding entries must be finite numbers")
        return [float(value) for value in vector]
