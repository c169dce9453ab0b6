"""Collection and document endpoints.

Handles collection listing and creation, PDF upload with validation and
parsing, and serving stored files for the source viewer.
"""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, status

from docchat.config import AppConfig, get_app_config
from docchat.models.schemas import Collection, CollectionCreate, FileItem, PDFUploadResponse
from docchat.parsing.pdf_parser import PDFParseError, parse_pdf
from docchat.providers.collections import (
    CollectionStore,
    StoredFile,
    UnknownFileError,
    get_collection_store,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["collections"])


def _validate_file_extension(filename: str | None) -> str:
    """Validate that file has .pdf extension.

    Raises:
        HTTPException: 400 if extension is invalid.
    """
    if not filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required",
        )

    if not filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are accepted",
        )

    return filename


async def _read_and_validate_size(file: UploadFile, max_bytes: int) -> bytes:
    """Read file content and validate size.

    Raises:
        HTTPException: 413 if file exceeds size limit.
    """
    content = await file.read()

    if len(content) > max_bytes:
        size_mb = len(content) / (1024 * 1024)
        limit_mb = max_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File size ({size_mb:.1f}MB) exceeds maximum allowed ({limit_mb}MB)",
        )

    return content


def content_disposition(filename: str) -> str:
    """Build an inline Content-Disposition header safe for any file name.

    Names that are not plain ASCII get an RFC 6266 ``filename*`` parameter
    next to an ASCII fallback.
    """
    quoted = quote(filename)
    if quoted == filename:
        return f'inline; filename="{filename}"'
    fallback = "".join(c if " " <= c < "\x7f" and c != '"' else "_" for c in filename)
    return f"inline; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def _file_response(stored: StoredFile) -> Response:
    return Response(
        content=stored.data,
        media_type=stored.item.type,
        headers={"Content-Disposition": content_disposition(stored.item.name)},
    )


@router.get("/collections", response_model=list[Collection])
async def list_collections(
    store: CollectionStore = Depends(get_collection_store),
) -> list[Collection]:
    """List collections; a default collection exists on first use."""
    return store.get_collections()


@router.post("/collections", response_model=Collection, status_code=status.HTTP_201_CREATED)
async def create_collection(
    payload: CollectionCreate,
    store: CollectionStore = Depends(get_collection_store),
) -> Collection:
    """Create a collection, or return the existing one with the same name."""
    return store.create_collection(payload.name)


@router.get("/collections/{collection}/files", response_model=list[FileItem])
async def list_files(
    collection: str,
    store: CollectionStore = Depends(get_collection_store),
) -> list[FileItem]:
    """List files of a collection, addressed by id or name.

    Raises:
        404: Unknown collection.
    """
    if store.find_collection(collection) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Collection not found: {collection}",
        )
    return store.get_files(collection)


@router.post("/collections/{collection}/files", response_model=PDFUploadResponse)
async def upload_pdf(
    collection: str,
    file: UploadFile,
    store: CollectionStore = Depends(get_collection_store),
    config: AppConfig = Depends(get_app_config),
) -> PDFUploadResponse:
    """Upload a PDF into a collection, creating the collection if needed.

    Raises:
        400: Invalid file (not PDF, empty, corrupt).
        413: File exceeds the configured size limit.
    """
    filename = _validate_file_extension(file.filename)
    content = await _read_and_validate_size(file, config.max_upload_bytes)

    try:
        pdf_content = parse_pdf(content, max_size=config.max_upload_bytes)
    except PDFParseError as e:
        logger.warning(f"PDF parse error for {filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    target, item = store.add_file(collection, filename, content, pdf_content)
    logger.info(f"Stored PDF {filename} ({pdf_content.pages} pages) in {target.name}")

    return PDFUploadResponse(
        filename=filename,
        pages=pdf_content.pages,
        collection=target.name,
        file_id=item.id,
        success=True,
    )


@router.get("/files/by-name/{file_name}")
async def get_file_by_name(
    file_name: str,
    collection: str | None = None,
    store: CollectionStore = Depends(get_collection_store),
) -> Response:
    """Serve a stored file by name, optionally within one collection."""
    stored = store.find_file(collection, file_name)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File not found: {file_name}",
        )
    return _file_response(stored)


@router.get("/files/{file_id}")
async def get_file(
    file_id: str,
    store: CollectionStore = Depends(get_collection_store),
) -> Response:
    """Serve a stored file for the source viewer."""
    try:
        stored = store.get_file(file_id)
    except UnknownFileError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    return _file_response(stored)
