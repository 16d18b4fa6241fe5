"""Upload routes."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from services.upload.app.auth.roles import ROLE_ADMIN
from services.upload.app.config import Settings
from services.upload.app.core.errors import BadRequest
from services.upload.app.dependencies import AppSettings, Uploads
from services.upload.app.middleware.auth import get_current_user, require_roles
from services.upload.app.upload.files import TempFile, delete_temp_file, save_temp_file
from services.upload.app.upload.schemas import (
    BulkIdsRequest,
    ListParams,
    SignedUrlRequest,
    UploadResponse,
)
from services.upload.app.upload.service import UploadService
from shared.schemas.api_responses import HttpResponse
from shared.utils.logging import get_logger
from shared.utils.storage import PROVIDER_GCS, PROVIDER_S3

logger = get_logger(__name__)

router = APIRouter(
    prefix="/upload",
    tags=["Upload"],
    dependencies=[Depends(get_current_user)],
)

AdminOnly = [Depends(require_roles(*ROLE_ADMIN))]

FileField = Annotated[UploadFile | None, File(alias="fileUpload")]
DirectoryField = Annotated[str | None, Form(alias="type")]
ProviderField = Annotated[str | None, Form()]

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def serialize(upload: Any) -> dict[str, Any] | None:
    """Upload record as a JSON-ready dict."""
    if upload is None:
        return None
    return UploadResponse.model_validate(upload).model_dump(mode="json")


async def push_to_provider(
    service: UploadService,
    settings: Settings,
    file: TempFile,
    directory: str | None,
    provider: str | None,
    upload_id: UUID | None = None,
) -> dict[str, Any]:
    """Send a spooled file to the chosen provider, then drop the temp copy.

    Returns:
        Payload with data plus the s3/gcs provider result
    """
    try:
        directory = directory or settings.default_directory
        provider = (provider or "").strip().lower()

        if not provider:
            raise BadRequest("please choose upload provider")

        if provider == PROVIDER_S3:
            result = await service.upload_file_s3_with_signed_url(file, directory, upload_id)
        elif provider == PROVIDER_GCS:
            result = await service.upload_file_gcs_with_signed_url(file, directory, upload_id)
        else:
            raise BadRequest(f"unsupported upload provider: {provider}")
    finally:
        await delete_temp_file(file.path)

    return {
        "data": serialize(result["upload_data"]),
        "s3": result["provider_data"] if provider == PROVIDER_S3 else None,
        "gcs": result["provider_data"] if provider == PROVIDER_GCS else None,
    }


async def bulk_ids(request: Request) -> BulkIdsRequest:
    """Read the bulk ``ids`` body from JSON or from a form post.

    A single form value may itself be a JSON list or a comma-separated string;
    repeated ``ids`` form fields are taken as a list.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        values = (await request.form()).getlist("ids")
        payload = {"ids": values[0] if len(values) == 1 else values}
    else:
        try:
            payload = await request.json()
        except ValueError:
            raise BadRequest("request body must be JSON or form data")

    try:
        return BulkIdsRequest.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))


BulkIds = Annotated[BulkIdsRequest, Depends(bulk_ids)]

@router.get("")
async def find_all(
    service: Uploads,
    params: Annotated[ListParams, Query()],
) -> dict[str, Any]:
    """List live uploads."""
    items, total = await service.find_all(params)
    return HttpResponse.get({"data": [serialize(item) for item in items], "total": total})


@router.get("/{upload_id}")
async def find_by_id(upload_id: UUID, service: Uploads) -> dict[str, Any]:
    """Fetch one live upload."""
    upload = await service.find_by_id(upload_id)
    return HttpResponse.get({"data": serialize(upload)})


@router.post("/s3/presign-url")
async def presign_url_s3(body: SignedUrlRequest, service: Uploads) -> dict[str, Any]:
    """Download URL for an S3 object key."""
    url = await service.get_signed_url_s3(body.key_file)
    return HttpResponse.get({"data": url})


@router.post("/gcs/presign-url")
async def presign_url_gcs(body: SignedUrlRequest, service: Uploads) -> dict[str, Any]:
    """Download URL for a GCS object key."""
    url = await service.get_signed_url_gcs(body.key_file)
    return HttpResponse.get({"data": url})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(
    service: Uploads,
    settings: AppSettings,
    file_upload: FileField = None,
    directory: DirectoryField = None,
    provider: ProviderField = None,
) -> dict[str, Any]:
    """Upload a file to S3 or GCS and record it."""
    temp_file = await save_temp_file(file_upload, settings.upload_temp_dir, settings.max_upload_size_bytes)
    if temp_file is None:
        return HttpResponse.created({"data": None, "s3": None, "gcs": None})

    payload = await push_to_provider(service, settings, temp_file, directory, provider)
    return HttpResponse.created(payload)


@router.put("/restore/{upload_id}", dependencies=AdminOnly)
async def restore(upload_id: UUID, service: Uploads) -> dict[str, Any]:
    """Bring back a soft-deleted upload."""
    upload = await service.restore(upload_id)
    return HttpResponse.updated({"data": serialize(upload)})


@router.put("/{upload_id}")
async def update(
    upload_id: UUID,
    service: Uploads,
    settings: AppSettings,
    file_upload: FileField = None,
    directory: DirectoryField = None,
    provider: ProviderField = None,
) -> dict[str, Any]:
    """Replace the file behind an upload; without a file, return it unchanged."""
    temp_file = await save_temp_file(file_upload, settings.upload_temp_dir, settings.max_upload_size_bytes)
    if temp_file is None:
        upload = await service.find_by_id(upload_id)
        return HttpResponse.updated({"data": serialize(upload), "s3": None, "gcs": None})

    payload = await push_to_provider(service, settings, temp_file, directory, provider, upload_id)
    return HttpResponse.updated(payload)


@router.delete("/soft-delete/{upload_id}", dependencies=AdminOnly)
async def soft_delete(upload_id: UUID, service: Uploads) -> dict[str, Any]:
    """Hide an upload from reads."""
    await service.soft_delete(upload_id)
    return HttpResponse.deleted()


@router.delete("/force-delete/{upload_id}", dependencies=AdminOnly)
async def force_delete(upload_id: UUID, service: Uploads) -> dict[str, Any]:
    """Permanently remove an upload and its stored object."""
    await service.force_delete(upload_id)
    return HttpResponse.deleted()


@router.post("/multiple/restore", dependencies=AdminOnly)
async def multiple_restore(body: BulkIds, service: Uploads) -> dict[str, Any]:
    """Restore several uploads."""
    count = await service.multiple_restore(body.ids)
    return HttpResponse.updated({"total": count})


@router.post("/multiple/soft-delete", dependencies=AdminOnly)
async def multiple_soft_delete(body: BulkIds, service: Uploads) -> dict[str, Any]:
    """Soft-delete several uploads."""
    count = await service.multiple_soft_delete(body.ids)
    return HttpResponse.deleted({"total": count})


@router.post("/multiple/force-delete", dependencies=AdminOnly)
async def multiple_force_delete(body: BulkIds, service: Uploads) -> dict[str, Any]:
    """Permanently remove several uploads."""
    count = await service.multiple_force_delete(body.ids)
    return HttpResponse.deleted({"total": count})
