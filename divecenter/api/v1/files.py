"""
File Upload API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form

from divecenter.core.security import get_current_active_user
from divecenter.schemas import FileUploadResponse, UploadCategoryEnum
from divecenter.services.file_service import FileService

router = APIRouter(prefix="/files", tags=["Files"])


def get_file_service() -> FileService:
    return FileService()


@router.post("/upload", response_model=FileUploadResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    category: UploadCategoryEnum = Form(...),
    file_service: FileService = Depends(get_file_service),
    current_user=Depends(get_current_active_user)
):
    """Upload a certification card, insurance document or other customer document"""
    content = await file.read()
    try:
        url, _ = file_service.save(content, file.filename, category.value, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "url": url,
        "original_name": file.filename,
        "message": "File uploaded successfully",
    }
