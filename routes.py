"""FastAPI routes for the asset vault."""
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response
from starlette import status

from errors import (
    DuplicateAssetError,
    FileTooLargeError,
    InvalidMimeTypeError,
    PersistenceError,
    ProcessingError,
    VaultError,
)
from models import AssetListing, TransportStatus, UploadDescriptor
from tags import normalize_tags
from vault import AssetVault

logger = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["images"])


def get_vault(request: Request) -> AssetVault:
    return request.app.state.vault


VaultDep = Annotated[AssetVault, Depends(get_vault)]


def http_error(exc: VaultError) -> HTTPException:
    """Map a pipeline failure onto an HTTP error with the same message."""
    if isinstance(exc, DuplicateAssetError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, FileTooLargeError):
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    elif isinstance(exc, InvalidMimeTypeError):
        code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    elif isinstance(exc, ProcessingError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, PersistenceError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))


def not_implemented(exc: NotImplementedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(exc))


def spool_upload(file: Optional[UploadFile], directory: Path) -> UploadDescriptor:
    """Copy a multipart file to disk and describe it for the validator."""
    if file is None or not file.filename:
        return UploadDescriptor(transport_status=TransportStatus.NO_FILE)
    try:
        with tempfile.NamedTemporaryFile(dir=directory, delete=False) as tmp:
            shutil.copyfileobj(file.file, tmp)
    except OSError:
        logger.exception("could not spool upload %s", file.filename)
        return UploadDescriptor(
            transport_status=TransportStatus.CANT_WRITE,
            original_name=file.filename,
        )
    return UploadDescriptor(
        temporary_path=Path(tmp.name),
        original_name=file.filename,
        declared_size=file.size,
    )


@router.post("/images", status_code=status.HTTP_201_CREATED)
def upload_image(
    vault: VaultDep,
    uploader: str = Form(...),
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
):
    """Upload an image with its metadata. Returns the content hash."""
    with tempfile.TemporaryDirectory(prefix="asset-vault-") as tmp_dir:
        upload = spool_upload(file, Path(tmp_dir))
        try:
            image_id = vault.add_image(
                upload, uploader=uploader, title=title, caption=caption, tags=tags
            )
        except VaultError as e:
            raise http_error(e) from e
    return {"id": image_id}


@router.get("/images")
def list_images(vault: VaultDep) -> list[AssetListing]:
    """List all images with their comma-joined tags."""
    return vault.list_images()


@router.get("/images/search")
def search_images(
    vault: VaultDep,
    title: str = "",
    caption: str = "",
    tags: str = "",
):
    try:
        return vault.image_search(
            title=title, caption=caption, tags=normalize_tags(tags)
        )
    except NotImplementedError as e:
        raise not_implemented(e) from e


@router.get("/images/{image_id}")
def image_detail(image_id: str, vault: VaultDep):
    """Show individual image metadata."""
    img = vault.get_image(image_id)
    if not img:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Not found")
    return {**img.model_dump(), "tags": vault.get_image_tags(image_id)}


@router.delete("/images/{image_id}")
def delete_image(image_id: str, vault: VaultDep):
    try:
        vault.delete_image(image_id)
    except NotImplementedError as e:
        raise not_implemented(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _serve(vault: AssetVault, image_id: str, thumbnail: bool) -> Response:
    found = vault.serve_image(image_id, thumbnail=thumbnail)
    if found is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Not found")
    content_type, data = found
    return Response(content=data, media_type=content_type)


@router.get("/media/{image_id}")
def media(image_id: str, vault: VaultDep):
    """Serve the display copy."""
    return _serve(vault, image_id, thumbnail=False)


@router.get("/thumb/{image_id}")
def thumbnail(image_id: str, vault: VaultDep):
    """Serve the thumbnail."""
    return _serve(vault, image_id, thumbnail=True)
