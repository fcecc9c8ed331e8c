from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from storefront.rate_limit import RELAXED, RateLimiter
from storefront.storage import ObjectStorage, get_storage

router = APIRouter(prefix="/api/storage", tags=["Storage"], dependencies=[Depends(RateLimiter(RELAXED))])


@router.get("/{key:path}", summary="Serve a stored file")
def serve_file(key: str, storage: ObjectStorage = Depends(get_storage)):
    try:
        stored = storage.get(key)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file key")
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(
        stored.path,
        media_type=stored.content_type,
        headers={
            "ETag": stored.etag,
            "Cache-Control": "public, max-age=31536000",
            "X-Content-Type-Options": "nosniff",
        },
    )
