import logging
from typing import List, Optional, Any

import numpy as np
import cohere

from jetstream_sync.services.exceptions import EmbeddingProviderError
from jetstream_sync.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

CANONICAL_DIMENSION = 1536


def normalize_vector(vector: List[float], expected_dimension: int = CANONICAL_DIMENSION) -> List[float]:
    """
    Fit a provider vector to the index dimension.

    Shorter vectors are right-padded with zeros, longer ones are truncated.
    Truncation is lossy and only exists to keep the index dimension fixed.
    """
    if len(vector) == expected_dimension:
        return list(vector)

    if len(vector) > expected_dimension:
        logger.warning(f"Truncating embedding from {len(vector)} to {expected_dimension} dimensions")
    else:
        logger.debug(f"Padding embedding from {len(vector)} to {expected_dimension} dimensions")

    fitted = np.zeros(expected_dimension, dtype=float)
    keep = min(len(vector), expected_dimension)
    fitted[:keep] = np.asarray(vector[:keep], dtype=float)
    return fitted.tolist()


class CohereEmbeddingClient:
    """
    Single-text embedding calls against Cohere, gated by a shared RateLimiter.

    Provider errors are not retried here; the batch processor treats them
    as a failed record.
    """

    def __init__(self,
                 rate_limiter: RateLimiter,
                 api_key: Optional[str] = None,
                 model: str = "embed-english-v3.0",
                 input_type: str = "search_document",
                 client: Optional[Any] = None):
        self.rate_limiter = rate_limiter
        self.api_key = api_key
        self.model = model
        self.input_type = input_type
        self._client = client

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ValueError("COHERE_API_KEY must be set in environment variables")
            self._client = cohere.AsyncClientV2(api_key=self.api_key)
        return self._client

    async def embed(self, text: str) -> List[float]:
        """Embed one text and return the raw provider vector"""
        await self.rate_limiter.check_and_wait()

        response = await self._get_client().embed(
            texts=[text],
            model=self.model,
            input_type=self.input_type,
            embedding_types=["float"],
            truncate="END",
        )

        embeddings = getattr(response.embeddings, "float_", None) or []
        if not embeddings or not embeddings[0]:
            raise EmbeddingProviderError(f"Cohere returned no embedding for model {self.model}")

        return [float(x) for x in embeddings[0]]
