import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..core.errors import UploadProviderError
from ..models import User
from ..schemas import UploadDeleteIn, UploadOut
from ..services.uploads import UPLOAD_RULES, delete_files, upload_file, validate_upload
from .deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/delete")
def delete_uploaded_files(
    payload: UploadDeleteIn,
    current_user: User = Depends(get_current_user),
):
    try:
        deleted = delete_files(payload.keys)
    except UploadProviderError:
        logger.exception("Deleting files %s for user %s failed", payload.keys, current_user.id)
        raise HTTPException(status_code=500, detail="Failed to delete files.")
    return {"success": deleted}


@router.post("/{kind}", response_model=UploadOut)
def upload_media(
    kind: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
):
    rule = UPLOAD_RULES.get(kind)
    if rule is None:
        raise HTTPException(status_code=404, detail="Unknown upload type.")
    # One byte past the limit is enough to reject an oversized file.
    data = file.file.read(rule.max_bytes + 1)
    validate_upload(kind, data)
    try:
        stored = upload_file(data, file.filename or f"{kind}.bin", rule)
    except UploadProviderError:
        logger.exception("Upload of %s for user %s failed", kind, current_user.id)
        raise HTTPException(status_code=500, detail="Failed to upload file.")
    logger.info("User %s uploaded %s", current_user.id, kind)
    return stored
