import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile

from headshot_intake.core.config import ImageValidationRules, settings
from headshot_intake.core.dependencies import get_gallery_service, get_ingestion_service, get_rules
from headshot_intake.models.imageRecord import ImageStatus
from headshot_intake.processing.normalizer import is_image_upload
from headshot_intake.schemas.image import DeleteImageRequest, ImageOut, UploadSummary
from headshot_intake.services.gallery import GalleryService
from headshot_intake.services.ingestion import IngestionService, UploadedImage

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND = "Image not found or unauthorized"
TYPE_NOT_ALLOWED = "File type not allowed. Allowed types: JPG, PNG, HEIC"


async def read_upload(file: UploadFile, rules: ImageValidationRules) -> UploadedImage:
    if not is_image_upload(file.content_type, file.filename or "", rules.allowed_types):
        raise HTTPException(400, TYPE_NOT_ALLOWED)
    data = await file.read()
    if len(data) > rules.max_file_size:
        raise HTTPException(400, f"File too large. Maximum size is {rules.max_file_size // (1024 * 1024)}MB")
    return UploadedImage(data=data, file_name=file.filename or "upload", content_type=file.content_type)


@router.post("/upload", status_code=201)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    rules: ImageValidationRules = Depends(get_rules),
    service: IngestionService = Depends(get_ingestion_service),
):
    if image is None:
        raise HTTPException(400, "No file uploaded")

    upload = await read_upload(image, rules)
    record = await service.ingest(upload, user_id or settings.DEFAULT_USER_ID)

    result = ImageOut.model_validate(record)
    if result.status == ImageStatus.ACCEPTED:
        message = "Image uploaded successfully"
    else:
        message = f"Image rejected: {result.rejection_reason}"
    return {"success": True, "data": result.to_json(), "message": message}


@router.post("/upload/multiple", status_code=201)
async def upload_multiple_images(
    images: Optional[List[UploadFile]] = File(None),
    user_id: Optional[str] = Form(None, alias="userId"),
    rules: ImageValidationRules = Depends(get_rules),
    service: IngestionService = Depends(get_ingestion_service),
):
    if not images:
        raise HTTPException(400, "No files uploaded")
    if len(images) > settings.MAX_FILES_PER_UPLOAD:
        raise HTTPException(400, f"Too many files. Maximum is {settings.MAX_FILES_PER_UPLOAD}")

    uploads = [await read_upload(f, rules) for f in images]
    records = await service.ingest_many(uploads, user_id or settings.DEFAULT_USER_ID)

    results = [ImageOut.model_validate(r) for r in records]
    accepted = sum(1 for r in results if r.status == ImageStatus.ACCEPTED)
    summary = UploadSummary(total=len(results), accepted=accepted, rejected=len(results) - accepted)
    return {
        "success": True,
        "data": [r.to_json() for r in results],
        "summary": summary.to_json(),
        "message": f"Uploaded {summary.total} images: {summary.accepted} accepted, {summary.rejected} rejected",
    }


@router.get("/url/{image_id}")
async def get_image_url(
    image_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    gallery: GalleryService = Depends(get_gallery_service),
):
    signed = await gallery.get_url(image_id, user_id or settings.DEFAULT_USER_ID)
    if signed is None:
        raise HTTPException(404, NOT_FOUND)
    return {"success": True, "data": signed.to_json()}


@router.get("/{user_id}")
async def get_user_images(
    user_id: str,
    status: Optional[ImageStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    gallery: GalleryService = Depends(get_gallery_service),
):
    result = await gallery.list_images(user_id, status, page, limit)
    return {
        "success": True,
        "data": [image.to_json() for image in result.images],
        "pagination": result.pagination.to_json(),
    }


@router.delete("/{image_id}")
async def delete_image(
    image_id: str,
    body: Optional[DeleteImageRequest] = Body(None),
    gallery: GalleryService = Depends(get_gallery_service),
):
    user_id = (body.user_id if body else None) or settings.DEFAULT_USER_ID
    if not await gallery.delete_image(image_id, user_id):
        raise HTTPException(404, NOT_FOUND)
    return {"success": True, "message": "Image deleted successfully"}
