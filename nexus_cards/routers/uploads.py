from __future__ import annotations

from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from nexus_cards.db.models import User
from nexus_cards.routers.deps import get_current_user, get_upload_service
from nexus_cards.services.upload_service import UploadService

router = APIRouter(tags=["uploads"])


@router.post("/file-upload/{kind}", status_code=201)
async def upload_file(
    kind: str,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
):
    # One byte past the limit is enough for save() to reject an oversized file.
    data = await file.read(uploads.size_limit(kind) + 1)
    return await run_in_threadpool(
        lambda: uploads.save(
            user.id,
            kind,
            data=data,
            original_name=file.filename or "",
            mimetype=file.content_type or "",
        )
    )


@router.delete("/file-upload/{kind}/{filename}", status_code=204)
def delete_file(
    kind: str,
    filename: str,
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
):
    uploads.delete(user.id, kind, filename)
    return Response(status_code=204)


@router.get("/uploads/{user_id}/{kind}/{filename}")
def serve_file(user_id: str, kind: str, filename: str, uploads: UploadService = Depends(get_upload_service)):
    return FileResponse(
        uploads.read(user_id, kind, filename),
        headers={"Cache-Control": "public, max-age=86400", "X-Content-Type-Options": "nosniff"},
    )
