"""
Study Material API routes
Upload, list, download and delete study materials
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from mockify.core import MaterialType
from mockify.database import get_db
from mockify.dependencies import get_current_user, get_rag_service
from mockify.models import User
from mockify.modules.study_rag import StudyRAGService
from mockify.schemas import MaterialListResponse, MaterialResponse, UploadResponse
from mockify.services import material_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload", response_model=UploadResponse, status_code=201)
def upload_material(
    file: UploadFile = File(...),
    material_type: str = Form(MaterialType.NOTES.value),
    exam_type: Optional[str] = Form(None),
    topic: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Upload a study material and index it for search and generation.

    Accepts PDF, DOCX, plain text and images (OCR). Re-uploading a file
    that is already indexed returns the existing material.
    """
    logger.info(f"Uploading material: {file.filename}")
    content = file.file.read()

    return material_service.upload_material(
        db,
        user,
        rag,
        filename=file.filename,
        content_type=file.content_type,
        content=content,
        material_type=material_type,
        exam_type=exam_type,
        topic=topic,
        language=language,
    )


@router.get("", response_model=MaterialListResponse)
def list_materials(
    exam_type: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List the user's materials, newest first
    """
    materials = material_service.list_materials(db, user, exam_type)
    return {"materials": materials, "total": len(materials)}


@router.get("/{material_id}", response_model=MaterialResponse)
def get_material(
    material_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return material_service.get_material(db, user, material_id)


@router.get("/{material_id}/download")
def download_material(
    material_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Download the original uploaded file
    """
    material = material_service.get_material(db, user, material_id)
    path = material_service.get_material_file(db, user, material_id)
    return FileResponse(path=str(path), filename=material.file_name, media_type=material.file_type)


@router.delete("/{material_id}")
def delete_material(
    material_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rag: StudyRAGService = Depends(get_rag_service),
):
    """
    Delete a material, its indexed chunks and the stored file
    """
    return material_service.delete_material(db, user, rag, material_id)
