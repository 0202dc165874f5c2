from __future__ import annotations

import json
import logging
import math
import os
import sqlite3
from array import array
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import VectorIndexSettings
from .errors import ConfigurationError, IndexUnavailableError, InvalidArgumentError
from .schemas import IndexStats, Match, VectorRecord

logger = logging.getLogger(__name__)

# Callers batch upserts themselves; this bounds the request payload.
RECOMMENDED_BATCH_SIZE = 100


class VectorIndex:
    def upsert(self, records: Sequence[VectorRecord]) -> int:
        raise NotImplementedError

    def query(
        self,
        vector: List[float],
        top_k: int,
        filter: Optional[Dict[str, Any]] = None,
        include_metadata: bool = True,
    ) -> List[Match]:
        raise NotImplementedError

    def stats(self) -> IndexStats:
        raise NotImplementedError


def category_filter(category: Optional[str]) -> Optional[Dict[str, Any]]:
    if not category:
        return None
    return {"category": {"$eq": category}}


def matches_filter(meta: Dict[str, Any], flt: Optional[Dict[str, Any]]) -> bool:
    """Evaluate a Pinecone-style metadata filter ($eq, $ne, $in or bare equality)."""
    if not flt:
        return True
    for key, cond in flt.items():
        value = meta.get(key)
        if not isinstance(cond, dict):
            cond = {"$eq": cond}
        for op, expected in cond.items():
            if op == "$eq" and value != expected:
                return False
            if op == "$ne" and value == expected:
                return False
            if op == "$in" and value not in expected:
                return False
            if op not in ("$eq", "$ne", "$in"):
                raise InvalidArgumentError(f"Unsupported filter operator: {op}")
    return True


class PineconeIndex(VectorIndex):
    """
    Pinecone data-plane client over plain HTTP.
    The index host is looked up once from the control plane unless configured.
    """

    API_VERSION = "2024-07"

    def __init__(
        self,
        *,
        api_key: str,
        index_name: str,
        host: Optional[str] = None,
        control_plane_url: str = "https://api.pinecone.io",
        namespace: str = "",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self._index_name = index_name
        self._host = host
        self._control_plane_url = control_plane_url.rstrip("/")
        self._namespace = namespace
        self._timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "Api-Key": api_key,
            "X-Pinecone-API-Version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    @property
    def index_name(self) -> str:
        return self._index_name

    def _request(self, method: str, url: str, operation: str, payload: Optional[Dict] = None) -> Dict:
        try:
            resp = self._session.request(
                method, url, json=payload, headers=self._headers, timeout=self._timeout
            )
            resp.raise_for_status()
            return resp.json() if resp.content else {}
        except (requests.RequestException, ValueError) as e:
            raise IndexUnavailableError(
                f"Pinecone {operation} failed for index '{self._index_name}'",
                operation=operation,
                details={"error": str(e)},
            ) from e

    def list_indexes(self) -> List[Dict[str, Any]]:
        data = self._request("GET", f"{self._control_plane_url}/indexes", "list_indexes")
        return list(data.get("indexes") or [])

    def _data_url(self, path: str) -> str:
        if not self._host:
            data = self._request(
                "GET", f"{self._control_plane_url}/indexes/{self._index_name}", "describe_index"
            )
            host = data.get("host")
            if not host:
                raise IndexUnavailableError(
                    f"Index '{self._index_name}' has no data-plane host", operation="describe_index"
                )
            self._host = host
        base = self._host if self._host.startswith("http") else f"https://{self._host}"
        return f"{base.rstrip('/')}/{path}"

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        if not records:
            return 0
        if len(records) > RECOMMENDED_BATCH_SIZE:
            logger.warning(
                "Upserting %d vectors in one request (recommended max %d)", len(records), RECOMMENDED_BATCH_SIZE
            )
        payload = {
            "vectors": [r.model_dump() for r in records],
            "namespace": self._namespace,
        }
        data = self._request("POST", self._data_url("vectors/upsert"), "upsert", payload)
        return int(data.get("upsertedCount", len(records)))

    def query(
        self,
        vector: List[float],
        top_k: int,
        filter: Optional[Dict[str, Any]] = None,
        include_metadata: bool = True,
    ) -> List[Match]:
        payload: Dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": include_metadata,
            "includeValues": False,
            "namespace": self._namespace,
        }
        if filter:
            payload["filter"] = filter
        data = self._request("POST", self._data_url("query"), "query", payload)
        try:
            matches = [
                Match(
                    id=m["id"],
                    score=float(m.get("score", 0.0)),
                    metadata=m.get("metadata") if include_metadata else None,
                )
                for m in data.get("matches") or []
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise IndexUnavailableError(
                f"Pinecone returned a malformed query response for index '{self._index_name}'",
                operation="query",
                details={"error": repr(e)},
            ) from e
        # Pinecone already ranks; keep the contract explicit.
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    def stats(self) -> IndexStats:
        data = self._request("POST", self._data_url("describe_index_stats"), "describe_index_stats", {})
        try:
            namespaces = {
                name: int(ns.get("vectorCount", ns.get("recordCount", 0)) or 0)
                for name, ns in (data.get("namespaces") or {}).items()
            }
            total = data.get("totalVectorCount", data.get("totalRecordCount"))
            return IndexStats(
                total_vectors=int(total if total is not None else sum(namespaces.values())),
                dimension=data.get("dimension"),
                fullness_ratio=float(data.get("indexFullness") or 0.0),
                namespaces=namespaces,
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise IndexUnavailableError(
                f"Pinecone returned malformed stats for index '{self._index_name}'",
                operation="describe_index_stats",
                details={"error": repr(e)},
            ) from e


class SQLiteVectorIndex(VectorIndex):
    """Local persistent index for development. Scores are cosine similarity."""

    def __init__(self, persist_dir: str, index_name: str):
        os.makedirs(persist_dir, exist_ok=True)
        self._index_name = index_name
        self._db_path = os.path.join(persist_dir, f"{index_name}.sqlite3")
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._init_schema()

    @property
    def index_name(self) -> str:
        return self._index_name

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS vectors (
              id TEXT PRIMARY KEY,
              meta_json TEXT NOT NULL,
              embedding BLOB NOT NULL
            );
            """
        )
        self._conn.commit()

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        rows = [
            (r.id, json.dumps(r.metadata, ensure_ascii=False), array("f", r.values).tobytes())
            for r in records
        ]
        try:
            self._conn.executemany(
                "INSERT OR REPLACE INTO vectors (id, meta_json, embedding) VALUES (?, ?, ?);",
                rows,
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise IndexUnavailableError("SQLite upsert failed", operation="upsert",
                                        details={"error": str(e)}) from e
        return len(rows)

    def query(
        self,
        vector: List[float],
        top_k: int,
        filter: Optional[Dict[str, Any]] = None,
        include_metadata: bool = True,
    ) -> List[Match]:
        q = array("f", vector)
        q_norm = math.sqrt(sum(x * x for x in q)) or 1.0
        try:
            rows = self._conn.execute("SELECT id, meta_json, embedding FROM vectors;").fetchall()
        except sqlite3.Error as e:
            raise IndexUnavailableError("SQLite query failed", operation="query",
                                        details={"error": str(e)}) from e

        scored: List[Match] = []
        for _id, meta_json, blob in rows:
            meta = json.loads(meta_json) if meta_json else {}
            if not matches_filter(meta, filter):
                continue
            emb = array("f")
            emb.frombytes(blob)
            e_norm = math.sqrt(sum(x * x for x in emb)) or 1.0
            dot = sum(a * b for a, b in zip(q, emb))
            scored.append(
                Match(id=_id, score=dot / (q_norm * e_norm), metadata=meta if include_metadata else None)
            )

        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    def stats(self) -> IndexStats:
        try:
            count, blob = self._conn.execute(
                "SELECT COUNT(*), (SELECT embedding FROM vectors LIMIT 1) FROM vectors;"
            ).fetchone()
        except sqlite3.Error as e:
            raise IndexUnavailableError("SQLite stats failed", operation="stats",
                                        details={"error": str(e)}) from e
        dimension = len(blob) // array("f").itemsize if blob else None
        return IndexStats(total_vectors=count, dimension=dimension, namespaces={"": count})


def make_vector_index(cfg: VectorIndexSettings) -> VectorIndex:
    if cfg.provider == "sqlite":
        return SQLiteVectorIndex(cfg.persist_dir, cfg.index_name)
    if cfg.provider == "pinecone":
        if not cfg.api_key:
            raise ConfigurationError("PINECONE_API_KEY is not set")
        return PineconeIndex(
            api_key=cfg.api_key,
            index_name=cfg.index_name,
            host=cfg.host,
            control_plane_url=cfg.control_plane_url,
            namespace=cfg.namespace,
            timeout=cfg.timeout_seconds,
        )
    raise ConfigurationError(f"Unsupported vector index provider: {cfg.provider}")
