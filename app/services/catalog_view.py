import logging
from typing import Dict, List, Optional

from app.models.find import Find, NewFind
from app.services.find_service import FindService
from app.utils.errors import FindServiceError

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load finds. Please try again later."
SAVE_ERROR = "Failed to save find. Please try again."
DELETE_ERROR = "Failed to delete find. Please try again."


def _copy(find: Find, **changes) -> Find:
    return Find(**{**find.model_dump(), **changes})


class CatalogView:
    """In-memory copy of the catalog as last seen by the caller.

    The list is only written after a service call succeeds; a failed call
    leaves it exactly as it was and records a generic ``error`` message.
    """

    def __init__(self, service: FindService):
        self.service = service
        self.finds: List[Find] = []
        self.error: str = ""
        # ids whose cached image_url predates an accepted photo replacement
        self.stale_images: set = set()

    async def refresh(self) -> List[Find]:
        try:
            finds = await self.service.list_all()
        except FindServiceError as e:
            logger.error("Error loading finds: %s", e)
            self.error = LOAD_ERROR
            raise

        self.finds = [_copy(find) for find in finds]
        self.stale_images.clear()
        self.error = ""
        return self.finds

    async def add(self, new_find: NewFind, image_bytes: Optional[bytes] = None, filename: str = "image") -> Find:
        try:
            saved = await self.service.create(new_find, image_bytes, filename)
        except FindServiceError as e:
            logger.error("Error adding find: %s", e)
            self.error = SAVE_ERROR
            raise

        self.finds = [_copy(saved)] + self.finds
        self.error = ""
        return saved

    async def edit(
        self,
        find_id: str,
        fields: NewFind,
        image_bytes: Optional[bytes] = None,
        filename: str = "image",
    ) -> None:
        try:
            await self.service.update(find_id, fields, image_bytes, filename)
        except FindServiceError as e:
            logger.error("Error updating find %s: %s", find_id, e)
            self.error = SAVE_ERROR
            raise

        changes: Dict = fields.model_dump()
        self.finds = [
            _copy(find, **changes) if find.id == find_id else find
            for find in self.finds
        ]

        # the authoritative URL only arrives with the next refresh
        if image_bytes:
            self.stale_images.add(find_id)

        self.error = ""

    async def remove(self, find: Find) -> None:
        try:
            await self.service.delete(find.id, find.image_url)
        except FindServiceError as e:
            logger.error("Error deleting find %s: %s", find.id, e)
            self.error = DELETE_ERROR
            raise

        self.finds = [f for f in self.finds if f.id != find.id]
        self.stale_images.discard(find.id)
        self.error = ""

    def is_image_stale(self, find_id: str) -> bool:
        return find_id in self.stale_images
