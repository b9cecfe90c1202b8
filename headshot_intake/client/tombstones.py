import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Iterable, Set

logger = logging.getLogger(__name__)


def storage_key(user_id: str) -> str:
    return f"deleted-images-{user_id}"


class TombstoneStore(ABC):
    """Per-user set of image ids deleted from this client."""

    @abstractmethod
    def load(self, user_id: str) -> Set[str]:
        ...

    @abstractmethod
    def save(self, user_id: str, image_ids: Iterable[str]) -> None:
        ...

    @abstractmethod
    def clear(self, user_id: str) -> None:
        ...


class JsonFileTombstoneStore(TombstoneStore):
    """Keeps each user's set as a JSON array in ``<directory>/deleted-images-<user>.json``."""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, user_id: str) -> str:
        return os.path.join(self.directory, f"{storage_key(user_id)}.json")

    def load(self, user_id: str) -> Set[str]:
        path = self._path(user_id)
        if not os.path.exists(path):
            return set()
        try:
            with open(path, "r", encoding="utf-8") as f:
                return set(json.load(f))
        except (OSError, ValueError, TypeError) as e:
            logger.error("Error loading deleted image ids from %s: %s", path, e)
            return set()

    def save(self, user_id: str, image_ids: Iterable[str]) -> None:
        os.makedirs(self.directory, exist_ok=True)
        path = self._path(user_id)
        tmp = path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(sorted(image_ids), f)
        os.replace(tmp, path)

    def clear(self, user_id: str) -> None:
        try:
            os.remove(self._path(user_id))
        except FileNotFoundError:
            pass
