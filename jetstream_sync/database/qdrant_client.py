import asyncio
import logging
import uuid
from typing import Optional

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models

from jetstream_sync.models.embedding_models import EmbeddingRecord

logger = logging.getLogger(__name__)


def point_id_for(type_tag: str, record_key: str) -> str:
    """Stable point id, so re-embedding a record overwrites its previous point"""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{type_tag}-{record_key}"))


class QdrantVectorIndex:
    """
    Client for the Qdrant collection holding JetStream record embeddings
    Creates the collection on first write
    """

    def __init__(self,
                 host: str = "localhost",
                 port: int = 6333,
                 api_key: Optional[str] = None,
                 collection_name: str = "jetstream_records",
                 dimension: int = 1536,
                 client: Optional[AsyncQdrantClient] = None):
        self.collection_name = collection_name
        self.dimension = dimension
        self._collection_ready = False
        self._collection_lock = asyncio.Lock()

        if client is not None:
            self.client = client
        elif host.startswith(("http://", "https://")):
            # Use url parameter for full URLs
            self.client = AsyncQdrantClient(url=host, api_key=api_key)
        else:
            self.client = AsyncQdrantClient(host=host, port=port, api_key=api_key)

    async def ensure_collection(self) -> None:
        async with self._collection_lock:
            if self._collection_ready:
                return

            if not await self.client.collection_exists(self.collection_name):
                logger.info(f"Creating Qdrant collection '{self.collection_name}' ({self.dimension} dims, cosine)")
                await self.client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=models.VectorParams(size=self.dimension, distance=models.Distance.COSINE),
                )
            self._collection_ready = True

    async def upsert_record(self, record: EmbeddingRecord) -> str:
        """Upsert one record's vector; returns the point id"""
        if len(record.embedding) != self.dimension:
            raise ValueError(f"Vector has {len(record.embedding)} dimensions, collection expects {self.dimension}")

        await self.ensure_collection()

        type_tag = record.record_type.type_tag
        point_id = point_id_for(type_tag, record.item_id)
        payload = {
            "record_id": record.item_id,
            "type": type_tag,
            "text": record.text,
            "source": {k: v for k, v in record.metadata.items() if k != "embedding"},
        }

        await self.client.upsert(
            collection_name=self.collection_name,
            points=[models.PointStruct(id=point_id, vector=record.embedding, payload=payload)],
        )
        logger.debug(f"Upserted {type_tag} {record.item_id} as point {point_id}")
        return point_id

