from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.dependencies import get_blob_store
from app.storage.blob_store import BlobStore, verify_presigned_token

router = APIRouter()


@router.get("/{key:path}")
def download(
    key: str,
    token: str = Query(..., description="Presigned token issued with the URL"),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Serve a blob through a presigned URL.

    - No bearer token needed; the presigned token is bound to the key and expires
    """
    verify_presigned_token(key, token)
    data, content_type = blob_store.get(key)
    return Response(content=data, media_type=content_type or "application/octet-stream")
