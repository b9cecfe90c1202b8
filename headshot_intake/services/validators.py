import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from headshot_intake.ML.face_detection import DetectedFace
from headshot_intake.core.config import ImageValidationRules
from headshot_intake.processing.hashing import hash_similarity
from headshot_intake.processing.normalizer import HEIF_EXTENSIONS, file_extension
from headshot_intake.services.records import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None


PASSED = ValidationResult(valid=True)


def first_failure(results: Sequence[ValidationResult]) -> Optional[ValidationResult]:
    return next((r for r in results if not r.valid), None)


def validate_faces(faces: Sequence[DetectedFace], rules: ImageValidationRules) -> ValidationResult:
    if not faces:
        return ValidationResult(False, "No faces detected in the image")

    if len(faces) > rules.max_face_count:
        return ValidationResult(False, f"Multiple faces detected ({len(faces)}). Only one face allowed")

    face = faces[0]
    if face.size_percentage < rules.min_face_size:
        return ValidationResult(
            False,
            f"Face is too small ({face.size_percentage:.2f}% of image). "
            f"Minimum required: {rules.min_face_size:g}%",
        )

    return PASSED


def validate_format(content_type: str, file_name: str, rules: ImageValidationRules) -> ValidationResult:
    if content_type in rules.allowed_types:
        return PASSED
    # HEIC often arrives without a usable MIME type
    if file_extension(file_name) in HEIF_EXTENSIONS:
        return PASSED
    return ValidationResult(False, "Unsupported file format. Allowed types: JPG, PNG, HEIC")


def validate_dimensions(width: int, height: int, rules: ImageValidationRules) -> ValidationResult:
    if width < rules.min_width or height < rules.min_height:
        return ValidationResult(
            False,
            f"Image dimensions too small. Minimum: {rules.min_width}x{rules.min_height}px, "
            f"Actual: {width}x{height}px",
        )

    if rules.max_width and rules.max_height:
        if width > rules.max_width or height > rules.max_height:
            return ValidationResult(
                False,
                f"Image dimensions too large. Maximum: {rules.max_width}x{rules.max_height}px, "
                f"Actual: {width}x{height}px",
            )

    return PASSED


async def validate_similarity(
    similarity_hash: str,
    user_id: str,
    records: RecordStore,
    rules: ImageValidationRules,
) -> ValidationResult:
    """Compare against every ACCEPTED image of the user.

    Two uploads racing for the same user can both read the snapshot before
    either is accepted; no lock is taken here.
    """
    existing = await records.accepted_hashes(user_id)
    if not existing:
        return PASSED

    for image_id, other_hash in existing:
        if not other_hash:
            continue
        similarity = hash_similarity(similarity_hash, other_hash)
        logger.debug("Hash similarity with %s: %.1f%%", image_id, similarity)
        if similarity >= rules.similarity_threshold:
            return ValidationResult(False, f"Image too similar to an existing one ({similarity:.1f}% match)")

    return PASSED


def validate_sharpness(blur_score: float, rules: ImageValidationRules) -> ValidationResult:
    threshold = rules.blur_threshold
    valid = blur_score >= threshold
    logger.info("Blur validation: score=%.2f, threshold=%s, valid=%s", blur_score, threshold, valid)
    if valid:
        return PASSED
    return ValidationResult(False, f"Image is too blurry (score: {blur_score:.2f}, minimum: {threshold:g})")
