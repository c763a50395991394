"""Validation helpers for uploaded study documents."""

import base64
from fastapi import HTTPException, UploadFile

ALLOWED_DOCUMENT_TYPES = {
    "application/pdf",
    "text/plain",
    "text/markdown",
    "text/csv",
    "application/json",
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/gif",
}

_EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


def encode_base64(raw: bytes) -> str:
    """Return the base64 text of raw file bytes."""
    return base64.b64encode(raw).decode("ascii")


def normalize_mime_type(content_type: str | None, filename: str | None) -> str:
    """Return a supported MIME type for an upload or raise HTTPException(415).

    MIME parameters (e.g. 'text/plain; charset=utf-8') are dropped. When the
    client sends no content type, or the generic 'application/octet-stream',
    the filename extension decides.
    """
    mime = (content_type or "").lower().split(";", 1)[0].strip()
    if mime and mime != "application/octet-stream":
        if mime not in ALLOWED_DOCUMENT_TYPES:
            raise HTTPException(status_code=415, detail=f"Unsupported document content type: {content_type}")
        return mime
    name = (filename or "").lower()
    for ext, guessed in _EXTENSION_TYPES.items():
        if name.endswith(ext):
            return guessed
    raise HTTPException(status_code=415, detail="Unsupported or missing document content type.")


async def read_document_bytes(upload: UploadFile, max_bytes: int) -> tuple[bytes, str]:
    """Read a validated upload and return `(raw_bytes, mime_type)`."""
    if not upload.filename:
        raise HTTPException(status_code=400, detail="Uploaded file must have a filename.")
    mime_type = normalize_mime_type(upload.content_type, upload.filename)
    raw = await upload.read()
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    if len(raw) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Uploaded file exceeds {max_bytes} bytes.")
    return raw, mime_type
