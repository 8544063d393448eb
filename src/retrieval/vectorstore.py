"""Pinecone vector store for block embeddings."""

import time
from functools import lru_cache
from typing import Any

from pinecone import Pinecone, ServerlessSpec

from src.config import get_settings
from src.sync.models import EmbeddingRecord, UpsertReport
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Pinecone metadata values are capped at 40KB per vector
METADATA_TEXT_LIMIT = 20000


class VectorStore:
    """Pinecone vector store wrapper."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.pc = Pinecone(api_key=self.settings.pinecone_api_key)
        self.index_name = self.settings.pinecone_index_name
        self.namespace = self.settings.pinecone_namespace
        self._index = None

    @property
    def index(self):
        """Get or create the Pinecone index."""
        if self._index is None:
            # Check if index exists
            existing_indexes = [idx.name for idx in self.pc.list_indexes()]

            if self.index_name not in existing_indexes:
                logger.info("creating_pinecone_index", name=self.index_name)
                self.pc.create_index(
                    name=self.index_name,
                    dimension=self.settings.embedding_dimensions,
                    metric="cosine",
                    spec=ServerlessSpec(
                        cloud="aws",
                        region="us-east-1",
                    ),
                )
                # Wait for index to be ready (async creation)
                for _ in range(60):  # Wait up to 60 seconds
                    desc = self.pc.describe_index(self.index_name)
                    if desc.status.ready:
                        break
                    logger.debug("waiting_for_index", name=self.index_name)
                    time.sleep(1)

            self._index = self.pc.Index(self.index_name)
        return self._index

    def upsert_embeddings(
        self,
        records: list[EmbeddingRecord],
        batch_size: int = 100,
    ) -> UpsertReport:
        """
        Upsert block embeddings, keyed by block ID.

        A failed batch is recorded against every block it contained; the
        remaining batches are still attempted.

        Args:
            records: Embeddings to write
            batch_size: Number of vectors per upsert request

        Returns:
            UpsertReport listing written and failed block IDs
        """
        report = UpsertReport()
        if not records:
            return report

        vectors = [
            {
                "id": record.block_id,
                "values": record.values,
                "metadata": {
                    "page_id": record.page_id,
                    "block_id": record.block_id,
                    "text": record.text[:METADATA_TEXT_LIMIT],
                },
            }
            for record in records
        ]

        for i in range(0, len(vectors), batch_size):
            batch = vectors[i : i + batch_size]
            ids = [vector["id"] for vector in batch]
            try:
                self.index.upsert(vectors=batch, namespace=self.namespace)
            except Exception as e:
                logger.error("vector_upsert_error", error=str(e), count=len(batch))
                for vector_id in ids:
                    report.failed[vector_id] = str(e)
                continue
            report.written.extend(ids)
            logger.debug("vectors_upserted", count=len(batch), total=len(report.written))

        logger.info(
            "embeddings_upserted",
            written=len(report.written),
            failed=len(report.failed),
        )
        return report

    def query(
        self,
        vector: list[float],
        top_k: int,
        threshold: float,
        filter_dict: dict | None = None,
    ) -> list[dict[str, Any]]:
        """
        Query the index for vectors similar to ``vector``.

        Args:
            vector: Query embedding
            top_k: Number of results to request
            threshold: Minimum similarity score to keep
            filter_dict: Metadata filter

        Returns:
            Matches with ``id``, ``score`` and ``metadata``, best first
        """
        results = self.index.query(
            vector=vector,
            top_k=top_k,
            namespace=self.namespace,
            filter=filter_dict,
            include_metadata=True,
        )

        documents = [
            {
                "id": match.id,
                "score": match.score,
                "metadata": match.metadata or {},
            }
            for match in results.matches
            if match.score >= threshold
        ]
        documents.sort(key=lambda doc: doc["score"], reverse=True)

        logger.info("vector_query_completed", results=len(documents), threshold=threshold)
        return documents

    def delete_by_ids(self, ids: list[str]) -> None:
        """
        Delete vectors by their IDs.

        Args:
            ids: List of vector IDs to delete
        """
        if not ids:
            return

        self.index.delete(ids=ids, namespace=self.namespace)
        logger.info("vectors_deleted", count=len(ids))

    def get_stats(self) -> dict[str, Any]:
        """Get index statistics."""
        stats = self.index.describe_index_stats()
        return {
            "total_vectors": stats.total_vector_count,
            "dimension": stats.dimension,
        }


@lru_cache(maxsize=1)
def get_vector_store() -> VectorStore:
    """Get or create vector store instance."""
    return VectorStore()
