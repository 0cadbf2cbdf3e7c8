"""Storage contract for canonical content records."""

from __future__ import annotations

from typing import List, Optional

from contentrank.ingestion.content_types import ContentRecord, ContentType, NormalizedItem


class StorageError(Exception):
    """Base error for storage failures."""


class StorageUnavailableError(StorageError):
    """The store cannot be reached at all (fatal for an ingestion run)."""


class ContentStore:
    """Operations the ingestion, scoring and search paths need from storage.

    `insert` must be atomic and respect the unique source_id: it returns None
    instead of creating a second record for an already-known source_id.
    """

    def get(self, content_id: int) -> Optional[ContentRecord]:
        raise NotImplementedError

    def get_by_source_id(self, source_id: str) -> Optional[ContentRecord]:
        raise NotImplementedError

    def insert(self, item: NormalizedItem) -> Optional[ContentRecord]:
        raise NotImplementedError

    def save_score(self, content_id: int, score: float) -> bool:
        """Overwrite the score (and updated_at). False if the record is gone."""
        raise NotImplementedError

    def search(
        self,
        *,
        keyword: Optional[str] = None,
        content_type: Optional[ContentType] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> List[ContentRecord]:
        """Title substring (case-insensitive) and/or type filter.

        Ordered by score DESC (unscored last), then published_at DESC.
        """
        raise NotImplementedError

    def count(self, *, keyword: Optional[str] = None, content_type: Optional[ContentType] = None) -> int:
        raise NotImplementedError

    def list_unscored(self, *, limit: int = 500) -> List[int]:
        raise NotImplementedError

    def delete(self, content_id: int) -> bool:
        raise NotImplementedError
