"""Upload endpoints for media files. All media is stored per-user."""
from fastapi import APIRouter, Depends, File, UploadFile

from tramoo.api.deps import get_current_user
from tramoo.core.exceptions import ValidationError
from tramoo.models.user import User
from tramoo.services.storage_service import StorageBackend, get_storage

router = APIRouter(prefix="/uploads", tags=["uploads"])

IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
MAX_IMAGE_MB = 5
MAX_POST_IMAGES = 8

EXT_MAP = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def _validate_type(file: UploadFile, field: str) -> str:
    content_type = file.content_type or ""
    if content_type not in IMAGE_TYPES:
        raise ValidationError.for_field(
            field, f"Invalid file type: {content_type or 'unknown'}. Allowed: jpeg, png, webp, gif"
        )
    return EXT_MAP[content_type]


async def _read_and_validate_size(file: UploadFile, field: str, max_size_mb: int = MAX_IMAGE_MB) -> bytes:
    data = await file.read()
    if len(data) > max_size_mb * 1024 * 1024:
        raise ValidationError.for_field(field, f"File too large. Max {max_size_mb}MB")
    return data


@router.post("/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    storage: StorageBackend = Depends(get_storage),
):
    """Upload avatar image. Returns URL to store in user.avatar_url."""
    ext = _validate_type(file, "file")
    data = await _read_and_validate_size(file, "file")
    url = storage.save(str(current_user.id), "avatars", data, ext)
    return {"url": url}


@router.post("/post-images")
async def upload_post_images(
    files: list[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
    storage: StorageBackend = Depends(get_storage),
):
    """Upload images for a post. Returns URLs for the post's images list."""
    if len(files) > MAX_POST_IMAGES:
        raise ValidationError.for_field("files", f"Maximum {MAX_POST_IMAGES} images per post")
    # Validate the whole batch before writing anything
    payloads = []
    for f in files:
        ext = _validate_type(f, "files")
        payloads.append((await _read_and_validate_size(f, "files"), ext))
    urls = [storage.save(str(current_user.id), "posts", data, ext) for data, ext in payloads]
    return {"urls": urls}
