"""HTTP client for the image intake API. Non-2xx responses raise ``httpx.HTTPStatusError``."""
import logging
import mimetypes
import os
from typing import List, Optional, Sequence, Tuple

import httpx

logger = logging.getLogger(__name__)

FileTuple = Tuple[str, bytes, str]


def file_tuple(path: str) -> FileTuple:
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    with open(path, "rb") as f:
        return os.path.basename(path), f.read(), content_type


class ImageApiClient:
    def __init__(self, base_url: str, user_id: str = "demo-user", http: Optional[httpx.Client] = None, timeout: float = 60.0):
        self.user_id = user_id
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self.http.close()

    def _send(self, method: str, url: str, **kwargs) -> dict:
        response = self.http.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()

    def upload_image(self, file: FileTuple) -> dict:
        return self._send("POST", "/images/upload", files={"image": file}, data={"userId": self.user_id})

    def upload_images(self, files: Sequence[FileTuple]) -> dict:
        return self._send(
            "POST",
            "/images/upload/multiple",
            files=[("images", f) for f in files],
            data={"userId": self.user_id},
        )

    def list_images(self, status: Optional[str] = None, page: int = 1, limit: int = 10) -> dict:
        params = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        return self._send("GET", f"/images/{self.user_id}", params=params)

    def list_all_images(self, status: Optional[str] = None, limit: int = 100) -> List[dict]:
        images, page = [], 1
        while True:
            body = self.list_images(status, page, limit)
            images.extend(body.get("data") or [])
            if page >= body.get("pagination", {}).get("totalPages", 0):
                return images
            page += 1

    def get_image_url(self, image_id: str) -> str:
        body = self._send("GET", f"/images/url/{image_id}", params={"userId": self.user_id})
        return body["data"]["url"]

    def delete_image(self, image_id: str) -> dict:
        return self._send("DELETE", f"/images/{image_id}", json={"userId": self.user_id})
