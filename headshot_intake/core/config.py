import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None:
        return default
    if value.strip().lower() in ("", "none", "off"):
        return None
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ImageValidationRules:
    """Acceptance policy applied to every upload."""
    max_file_size: int = 120 * 1024 * 1024

    min_width: int = 300
    min_height: int = 300
    # both maxima must be set for the upper bound to apply
    max_width: Optional[int] = 5000
    max_height: Optional[int] = 5000

    allowed_types: Tuple[str, ...] = (
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/heic",
        "image/heif",
    )

    similarity_threshold: float = 85.0  # percent, 0-100
    blur_threshold: float = 5.0

    min_face_size: float = 5.0  # percent of image area
    max_face_count: int = 1

    # fail-open policy for auxiliary metrics
    blur_failure_score: float = 100.0
    random_hash_on_failure: bool = True

    heic_jpeg_quality: int = 90
    hash_size: int = 32

    @classmethod
    def from_env(cls) -> "ImageValidationRules":
        defaults = cls()
        return cls(
            max_file_size=_env_int("IMAGE_MAX_FILE_SIZE", defaults.max_file_size),
            min_width=_env_int("IMAGE_MIN_WIDTH", defaults.min_width),
            min_height=_env_int("IMAGE_MIN_HEIGHT", defaults.min_height),
            max_width=_env_int("IMAGE_MAX_WIDTH", defaults.max_width),
            max_height=_env_int("IMAGE_MAX_HEIGHT", defaults.max_height),
            similarity_threshold=_env_float("IMAGE_SIMILARITY_THRESHOLD", defaults.similarity_threshold),
            blur_threshold=_env_float("IMAGE_BLUR_THRESHOLD", defaults.blur_threshold),
            min_face_size=_env_float("IMAGE_MIN_FACE_SIZE", defaults.min_face_size),
            max_face_count=_env_int("IMAGE_MAX_FACE_COUNT", defaults.max_face_count),
            blur_failure_score=_env_float("IMAGE_BLUR_FAILURE_SCORE", defaults.blur_failure_score),
            random_hash_on_failure=_env_bool("IMAGE_RANDOM_HASH_ON_FAILURE", defaults.random_hash_on_failure),
        )


@dataclass
class Settings:
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql+asyncpg://postgres:postgres@db:5432/headshot_intake"
    )

    MINIO_ENDPOINT: str = os.getenv("MINIO_ENDPOINT", "localhost:9000")
    MINIO_ACCESS_KEY: str = os.getenv("MINIO_ACCESS_KEY", "admin")
    MINIO_SECRET_KEY: str = os.getenv("MINIO_SECRET_KEY", "admin123456")
    MINIO_BUCKET: str = os.getenv("MINIO_BUCKET", "headshot-intake")
    MINIO_SECURE: bool = _env_bool("MINIO_SECURE", False)

    SIGNED_URL_TTL_HOURS: int = _env_int("SIGNED_URL_TTL_HOURS", 24)
    MAX_FILES_PER_UPLOAD: int = 10
    DEFAULT_USER_ID: str = os.getenv("DEFAULT_USER_ID", "demo-user")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    image_validation: ImageValidationRules = field(default_factory=ImageValidationRules.from_env)


settings = Settings()
