"""
Knowledge-base ingestion: corpus directory -> chunks -> embeddings -> vector index.

The run is fail-fast. A failed embedding or upsert aborts everything, since a
partially ingested corpus no longer matches the index. Chunk ids are a single
counter over the whole corpus in filename order, so re-running on an unchanged
corpus overwrites the same records. Adding, removing or renaming files shifts
the ids and can leave stale records behind; wipe the index in that case.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .chunking import Chunk, chunk_text
from .config import IngestionSettings
from .embeddings import Embedder
from .errors import MissingInputError
from .loaders import Document, load_corpus
from .schemas import IndexStats, IngestionReport, Match, VectorRecord
from .vectorstore import VectorIndex

logger = logging.getLogger(__name__)


class IngestionPipeline:
    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        cfg: IngestionSettings,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._embedder = embedder
        self._index = index
        self._cfg = cfg
        self._sleep = sleep

    def read_documents(self, corpus_dir: Optional[Path] = None) -> List[Document]:
        return load_corpus(Path(corpus_dir or self._cfg.corpus_dir))

    def build_chunks(self, documents: Sequence[Document]) -> List[Chunk]:
        chunks: List[Chunk] = []
        counter = 0
        for doc in documents:
            pieces = chunk_text(doc.content, self._cfg.chunk_size, self._cfg.chunk_overlap)
            for i, piece in enumerate(pieces):
                chunks.append(
                    Chunk(
                        chunk_id=f"chunk_{counter}",
                        text=piece,
                        meta={
                            "filename": doc.filename,
                            "category": doc.category,
                            "chunkIndex": i,
                            "totalChunks": len(pieces),
                            # matches are formatted straight from metadata
                            "text": piece,
                        },
                    )
                )
                counter += 1
            logger.info("Processed %s into %d chunks", doc.filename, len(pieces))
        return chunks

    def embed_chunks(self, chunks: Sequence[Chunk]) -> List[VectorRecord]:
        logger.info("Generating embeddings for %d chunks", len(chunks))
        records: List[VectorRecord] = []
        for n, chunk in enumerate(chunks, start=1):
            try:
                values = self._embedder.embed(chunk.text)
            except Exception:
                logger.error("Embedding failed for %s, aborting ingestion", chunk.chunk_id)
                raise
            records.append(VectorRecord(id=chunk.chunk_id, values=values, metadata=dict(chunk.meta)))

            if n % self._cfg.progress_every == 0 or n == len(chunks):
                logger.info("Progress: %d/%d embeddings generated", n, len(chunks))
            self._sleep(self._cfg.embed_delay_seconds)
        return records

    def upsert_records(self, records: Sequence[VectorRecord]) -> int:
        """Sequential batches; returns the number of batches written."""
        size = self._cfg.batch_size
        total = (len(records) + size - 1) // size
        for b, start in enumerate(range(0, len(records), size), start=1):
            batch = records[start : start + size]
            try:
                self._index.upsert(batch)
            except Exception:
                logger.error("Upsert of batch %d/%d failed, aborting ingestion", b, total)
                raise
            logger.info("Upserted batch %d/%d", b, total)
            self._sleep(self._cfg.batch_delay_seconds)
        return total

    def verify(self) -> IndexStats:
        stats = self._index.stats()
        logger.info(
            "Index stats: total=%d dimension=%s fullness=%.2f%% namespaces=%s",
            stats.total_vectors,
            stats.dimension,
            stats.fullness_ratio * 100,
            list(stats.namespaces),
        )
        return stats

    def smoke_test(self, query: Optional[str] = None, top_k: int = 3) -> List[Match]:
        query = query or self._cfg.smoke_test_query
        matches = self._index.query(self._embedder.embed(query), top_k=top_k, include_metadata=True)
        logger.info("Smoke test %r returned %d matches", query, len(matches))
        for i, m in enumerate(matches, start=1):
            logger.info("  %d. score=%.4f category=%s preview=%r", i, m.score, m.category, m.text[:100])
        return matches

    def run(self, corpus_dir: Optional[Path] = None, *, smoke_test: bool = True) -> IngestionReport:
        documents = self.read_documents(corpus_dir)
        if not documents:
            raise MissingInputError("No documents found in knowledge base",
                                    details={"corpus_dir": str(corpus_dir or self._cfg.corpus_dir)})
        logger.info("Loaded %d documents", len(documents))

        chunks = self.build_chunks(documents)
        logger.info("Created %d chunks", len(chunks))

        records = self.embed_chunks(chunks)
        batches = self.upsert_records(records)
        stats = self.verify()
        matches = self.smoke_test() if smoke_test else []

        return IngestionReport(
            documents=len(documents),
            chunks=len(chunks),
            vectors_upserted=len(records),
            batches=batches,
            stats=stats,
            smoke_test_matches=matches,
        )
