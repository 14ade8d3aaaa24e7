"""Find lifecycle: keeps a Find's record and its photo asset consistent.

The asset store and the record store cannot share a transaction, so each
operation runs its steps in a fixed order that bounds what a partial
failure can leave behind:

* create -- upload asset, then insert record. A failed upload writes
  nothing; a failed insert orphans the uploaded asset.
* update -- upload new asset, then drop the old asset, then write the
  record. The old photo is only touched once its replacement exists; a
  failed write orphans the new asset.
* delete -- drop asset, then delete record. A failure in between leaves an
  orphaned asset, never a record pointing at nothing.

Orphaned assets are logged with their URL so they can be reclaimed by an
out-of-band sweep. Asset deletion is always best-effort.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from app.models.find import PLACEHOLDER_IMAGE_URL, Find, NewFind
from app.utils.errors import AssetDeleteFailed

logger = logging.getLogger(__name__)


class AssetStore(Protocol):
    def upload_asset(self, data: bytes, suggested_name: str) -> str: ...

    def delete_asset(self, url: str) -> None: ...


class RecordStore(Protocol):
    def insert_record(self, fields: dict) -> Find: ...

    def update_record(self, find_id: str, fields: dict) -> None: ...

    def delete_record(self, find_id: str) -> None: ...

    def get_record(self, find_id: str) -> Optional[Find]: ...

    def list_records(self) -> List[Find]: ...


@dataclass
class CleanupResult:
    url: str
    deleted: bool
    error: Optional[Exception] = None


class FindService:
    def __init__(self, assets: AssetStore, records: RecordStore):
        self.assets = assets
        self.records = records

    async def list_all(self) -> List[Find]:
        """Every Find, newest ``created_at`` first. Raises StoreUnavailable."""
        return await asyncio.to_thread(self.records.list_records)

    async def get(self, find_id: str) -> Optional[Find]:
        return await asyncio.to_thread(self.records.get_record, find_id)

    async def create(self, new_find: NewFind, image_bytes: Optional[bytes] = None, filename: str = "image") -> Find:
        image_url = PLACEHOLDER_IMAGE_URL

        if image_bytes:
            # AssetUploadFailed propagates before anything is written
            image_url = await asyncio.to_thread(self.assets.upload_asset, image_bytes, filename)

        fields = new_find.model_dump()
        fields["image_url"] = image_url

        try:
            find = await asyncio.to_thread(self.records.insert_record, fields)
        except Exception:
            self._log_orphan(image_url, "create")
            raise

        logger.info("Created find %s", find.id)
        return find

    async def update(
        self,
        find_id: str,
        fields: NewFind,
        image_bytes: Optional[bytes] = None,
        filename: str = "image",
    ) -> None:
        updates = fields.model_dump()
        image_url = None

        if image_bytes:
            # 1. new asset first; on failure the old photo is untouched
            image_url = await asyncio.to_thread(self.assets.upload_asset, image_bytes, filename)

            # 2. reclaim the old asset only once the replacement exists
            old_find = await self._get_for_cleanup(find_id)
            if old_find:
                cleanup = await self._delete_asset(old_find.image_url)
                self._report_cleanup(cleanup, find_id)

            updates["image_url"] = image_url

        # 3. metadata; the record store stamps updated_at
        try:
            await asyncio.to_thread(self.records.update_record, find_id, updates)
        except Exception:
            if image_url:
                self._log_orphan(image_url, "update")
            raise

        logger.info("Updated find %s", find_id)

    async def delete(self, find_id: str, image_url: str) -> None:
        cleanup = await self._delete_asset(image_url)
        self._report_cleanup(cleanup, find_id)

        # RecordDeleteFailed is the only failure callers see
        await asyncio.to_thread(self.records.delete_record, find_id)

        logger.info("Deleted find %s", find_id)

    async def _get_for_cleanup(self, find_id: str) -> Optional[Find]:
        try:
            return await self.get(find_id)
        except Exception as e:
            logger.warning("Could not look up find %s to reclaim its old image: %s", find_id, e)
            return None

    async def _delete_asset(self, url: Optional[str]) -> CleanupResult:
        if not url or url == PLACEHOLDER_IMAGE_URL:
            return CleanupResult(url=url or "", deleted=False)

        try:
            await asyncio.to_thread(self.assets.delete_asset, url)
        except Exception as e:
            return CleanupResult(url=url, deleted=False, error=e)

        return CleanupResult(url=url, deleted=True)

    @staticmethod
    def _report_cleanup(cleanup: CleanupResult, find_id: str):
        if cleanup.error is not None:
            kind = "Error" if isinstance(cleanup.error, AssetDeleteFailed) else "Unexpected error"
            logger.warning("%s deleting image %s of find %s: %s", kind, cleanup.url, find_id, cleanup.error)
        elif cleanup.deleted:
            logger.info("Deleted image %s of find %s", cleanup.url, find_id)

    @staticmethod
    def _log_orphan(image_url: str, operation: str):
        if image_url and image_url != PLACEHOLDER_IMAGE_URL:
            logger.warning("Orphaned image %s after failed %s", image_url, operation)
