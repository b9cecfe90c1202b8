"""Client-side view of a user's images. Deletes are optimistic and remembered locally."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Set, Union

import httpx

from headshot_intake.client.api import FileTuple, ImageApiClient, file_tuple
from headshot_intake.client.tombstones import TombstoneStore

logger = logging.getLogger(__name__)

REQUIRED_IMAGES = 6
MAX_IMAGES = 10


@dataclass
class DeleteOutcome:
    image_id: str
    removed_remotely: bool
    message: str
    error: Optional[str] = None


@dataclass
class BulkDeleteSummary:
    succeeded: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        if not self.succeeded and not self.failed:
            return "No images to delete."
        text = f"Deleted {self.succeeded} images successfully"
        if self.failed:
            text += f" ({self.failed} failed but were removed locally)"
        return text + "."


@dataclass
class UploadReport:
    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    skipped: int = 0


class ImageGallery:
    def __init__(self, api: ImageApiClient, tombstones: TombstoneStore, user_id: Optional[str] = None):
        self.api = api
        self.tombstones = tombstones
        self.user_id = user_id or api.user_id
        self.deleted_ids: Set[str] = tombstones.load(self.user_id)
        self.accepted: List[dict] = []
        self.rejected: List[dict] = []

    @property
    def visible_images(self) -> List[dict]:
        return self.accepted + self.rejected

    @property
    def is_complete(self) -> bool:
        return len(self.accepted) >= REQUIRED_IMAGES

    def _visible(self, images: Sequence[dict]) -> List[dict]:
        return [img for img in images if img["id"] not in self.deleted_ids]

    def refresh(self) -> None:
        self.accepted = self._visible(self.api.list_all_images("ACCEPTED"))
        self.rejected = self._visible(self.api.list_all_images("REJECTED"))

    def _hide(self, image_id: str) -> None:
        self.accepted = [img for img in self.accepted if img["id"] != image_id]
        self.rejected = [img for img in self.rejected if img["id"] != image_id]

    def _tombstone(self, image_id: str) -> None:
        self.deleted_ids.add(image_id)
        try:
            self.tombstones.save(self.user_id, self.deleted_ids)
        except OSError as e:
            logger.error("Error saving deleted image ids for %s: %s", self.user_id, e)

    def delete(self, image_id: str) -> DeleteOutcome:
        if not image_id:
            raise ValueError("Cannot delete image: missing image id")

        self._hide(image_id)
        try:
            self.api.delete_image(image_id)
        except Exception as e:
            outcome = self._failed_delete(image_id, e)
        else:
            outcome = DeleteOutcome(image_id, True, "Image deleted successfully!")
        finally:
            self._tombstone(image_id)
        return outcome

    def _failed_delete(self, image_id: str, error: Exception) -> DeleteOutcome:
        if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 404:
            return DeleteOutcome(image_id, False, "Image removed successfully.")
        logger.warning("Error deleting image %s: %s", image_id, error)
        return DeleteOutcome(
            image_id,
            False,
            "Server error while deleting image. The image will remain hidden.",
            error=str(error),
        )

    def delete_all(self) -> BulkDeleteSummary:
        summary = BulkDeleteSummary()
        for image in self.visible_images:
            if self.delete(image["id"]).removed_remotely:
                summary.succeeded += 1
            else:
                summary.failed += 1
        self.accepted, self.rejected = [], []
        return summary

    def reset(self) -> None:
        """Forget local deletions and reload from the server."""
        self.tombstones.clear(self.user_id)
        self.deleted_ids = set()
        self.accepted, self.rejected = [], []
        self.refresh()

    def upload(
        self,
        files: Sequence[Union[str, FileTuple]],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> UploadReport:
        """Upload files one after another until MAX_IMAGES are accepted."""
        remaining = max(MAX_IMAGES - len(self.accepted), 0)
        batch = list(files)[:remaining]
        report = UploadReport(skipped=len(files) - len(batch))

        for index, file in enumerate(batch):
            if on_progress:
                on_progress(index, len(batch))
            try:
                body = self.api.upload_image(file_tuple(file) if isinstance(file, str) else file)
            except httpx.HTTPError as e:
                logger.error("Error uploading file %d: %s", index, e)
                report.failed += 1
                continue

            image = body.get("data") or {}
            if body.get("success") and image.get("status") == "ACCEPTED":
                self.accepted.append(image)
                report.accepted += 1
            elif body.get("success"):
                self.rejected.append(image)
                report.rejected += 1
            else:
                report.failed += 1

        return report
