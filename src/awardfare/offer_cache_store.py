# src/awardfare/offer_cache_store.py

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from contextlib import closing
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pandas as pd

from awardfare.core.errors import CacheUnavailable
from awardfare.core.models import CanonicalOffer, ProviderCacheEntry


logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.path.join("data", "offer_cache.sqlite")

# Seconds a writer waits on a locked database before giving up
BUSY_TIMEOUT_S = 5.0


def _ensure_parent_dir(path: str) -> None:
    parent = os.path.dirname(path)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode_offers(offers: List[CanonicalOffer]) -> str:
    return json.dumps([o.to_dict() for o in offers], separators=(",", ":"))


def _decode_offers(raw: str) -> List[CanonicalOffer]:
    return [CanonicalOffer.from_dict(d) for d in json.loads(raw)]


class SqliteOfferCacheStore:
    """
    Last good result per (provider_code, criteria fingerprint).

    Every successful provider call overwrites its entry; entries never expire.
    One connection per operation, WAL journal, so concurrent writers for
    different keys don't block each other and same-key writes are
    last-writer-wins.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        _ensure_parent_dir(self.db_path)
        try:
            self._init_schema()
        except sqlite3.Error as exc:
            raise CacheUnavailable(f"cannot open offer cache at {db_path}: {exc}") from exc

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_S)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _init_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS provider_offer_cache (
                    provider_code TEXT NOT NULL,
                    fingerprint TEXT NOT NULL,
                    criteria_json TEXT,
                    offers_json TEXT NOT NULL,
                    captured_at TEXT NOT NULL,
                    PRIMARY KEY (provider_code, fingerprint)
                );
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_cache_captured ON provider_offer_cache(captured_at);"
            )

    def get_entry(self, provider_code: str, fingerprint: str) -> Optional[ProviderCacheEntry]:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    """
                    SELECT offers_json, captured_at
                    FROM provider_offer_cache
                    WHERE provider_code = ? AND fingerprint = ?;
                    """,
                    (provider_code, fingerprint),
                ).fetchone()
        except sqlite3.Error as exc:
            raise CacheUnavailable(f"cache read failed: {exc}") from exc

        if row is None:
            return None

        try:
            offers = _decode_offers(row[0])
            captured_at = datetime.fromisoformat(row[1])
        except (ValueError, KeyError, TypeError) as exc:
            raise CacheUnavailable(
                f"corrupt cache entry for {provider_code}/{fingerprint[:12]}: {exc}"
            ) from exc

        return ProviderCacheEntry(provider_code, fingerprint, offers, captured_at)

    def get(self, provider_code: str, fingerprint: str) -> Optional[List[CanonicalOffer]]:
        entry = self.get_entry(provider_code, fingerprint)
        return entry.offers if entry else None

    def put(
        self,
        provider_code: str,
        fingerprint: str,
        offers: List[CanonicalOffer],
        *,
        criteria_json: Optional[str] = None,
        captured_at: Optional[datetime] = None,
    ) -> None:
        captured_at = captured_at or _now()
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO provider_offer_cache (
                        provider_code, fingerprint, criteria_json, offers_json, captured_at
                    ) VALUES (?, ?, ?, ?, ?);
                    """,
                    (
                        provider_code,
                        fingerprint,
                        criteria_json,
                        _encode_offers(offers),
                        captured_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise CacheUnavailable(f"cache write failed: {exc}") from exc

    def delete(self, provider_code: str, fingerprint: str) -> bool:
        try:
            with closing(self._connect()) as conn, conn:
                cur = conn.execute(
                    "DELETE FROM provider_offer_cache WHERE provider_code = ? AND fingerprint = ?;",
                    (provider_code, fingerprint),
                )
                return cur.rowcount > 0
        except sqlite3.Error as exc:
            raise CacheUnavailable(f"cache delete failed: {exc}") from exc

    def clear(self, provider_code: Optional[str] = None) -> int:
        try:
            with closing(self._connect()) as conn, conn:
                if provider_code:
                    cur = conn.execute(
                        "DELETE FROM provider_offer_cache WHERE provider_code = ?;",
                        (provider_code,),
                    )
                else:
                    cur = conn.execute("DELETE FROM provider_offer_cache;")
                return cur.rowcount
        except sqlite3.Error as exc:
            raise CacheUnavailable(f"cache clear failed: {exc}") from exc

    def entries_frame(self) -> pd.DataFrame:
        """
        Inventory of cached snapshots: provider_code, fingerprint, criteria_json,
        captured_at, offer_count. Newest first.
        """
        try:
            with closing(self._connect()) as conn:
                df = pd.read_sql_query(
                    """
                    SELECT provider_code, fingerprint, criteria_json, offers_json, captured_at
                    FROM provider_offer_cache
                    ORDER BY captured_at DESC;
                    """,
                    conn,
                )
        except (sqlite3.Error, pd.errors.DatabaseError) as exc:
            raise CacheUnavailable(f"cache inventory failed: {exc}") from exc

        df["offer_count"] = df["offers_json"].map(lambda raw: len(json.loads(raw)))
        df["captured_at"] = pd.to_datetime(df["captured_at"], utc=True)
        return df.drop(columns=["offers_json"])


class InMemoryOfferCacheStore:
    """Same interface as SqliteOfferCacheStore, process-local. Used in tests."""

    def __init__(self):
        self._entries: Dict[Tuple[str, str], ProviderCacheEntry] = {}
        self._lock = threading.Lock()

    def get_entry(self, provider_code: str, fingerprint: str) -> Optional[ProviderCacheEntry]:
        with self._lock:
            return self._entries.get((provider_code, fingerprint))

    def get(self, provider_code: str, fingerprint: str) -> Optional[List[CanonicalOffer]]:
        entry = self.get_entry(provider_code, fingerprint)
        return list(entry.offers) if entry else None

    def put(
        self,
        provider_code: str,
        fingerprint: str,
        offers: List[CanonicalOffer],
        *,
        criteria_json: Optional[str] = None,
        captured_at: Optional[datetime] = None,
    ) -> None:
        entry = ProviderCacheEntry(
            provider_code, fingerprint, list(offers), captured_at or _now()
        )
        with self._lock:
            self._entries[(provider_code, fingerprint)] = entry

    def delete(self, provider_code: str, fingerprint: str) -> bool:
        with self._lock:
            return self._entries.pop((provider_code, fingerprint), None) is not None

    def clear(self, provider_code: Optional[str] = None) -> int:
        with self._lock:
            keys = [k for k in self._entries if provider_code is None or k[0] == provider_code]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def entries_frame(self) -> pd.DataFrame:
        with self._lock:
            rows = [
                {
                    "provider_code": e.provider_code,
                    "fingerprint": e.fingerprint,
                    "criteria_json": None,
                    "captured_at": e.captured_at,
                    "offer_count": len(e.offers),
                }
                for e in self._entries.values()
            ]
        df = pd.DataFrame(
            rows,
            columns=["provider_code", "fingerprint", "criteria_json", "captured_at", "offer_count"],
        )
        return df.sort_values("captured_at", ascending=False).reset_index(drop=True)
