"""
Material Service
Handles study material upload, processing and management
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mockify.config import settings
from mockify.core import (
    Messages,
    FileLimits,
    MaterialType,
    ProcessingStatus,
    BadRequestException,
    DatabaseException,
    FileProcessingException,
    NotFoundException,
    ingestion_logger,
)
from mockify.models import StudyMaterial, User, utcnow
from mockify.modules.study_rag import StudyRAGService, compute_file_hash
from mockify.utils import build_storage_name, ensure_directory, format_file_size, guess_mime_type

logger = logging.getLogger(__name__)


class MaterialService:
    """Service for study material upload and management"""

    def __init__(self):
        ensure_directory(settings.upload_dir)

    @staticmethod
    def resolve_path(material: StudyMaterial) -> Path:
        return settings.upload_dir / material.file_path

    def validate_upload(self, filename: Optional[str], content_type: Optional[str], content: bytes) -> str:
        """Check name, type and size of an upload; returns the MIME type"""
        if not filename:
            raise BadRequestException("Filename is required")

        mime_type = guess_mime_type(filename, content_type)
        if mime_type not in FileLimits.ALLOWED_MIME_TYPES:
            raise BadRequestException(Messages.INVALID_FILE_TYPE)

        if not content:
            raise BadRequestException(Messages.EMPTY_FILE)
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise BadRequestException(Messages.FILE_TOO_LARGE)

        return mime_type

    def upload_material(
        self,
        db: Session,
        user: User,
        rag: StudyRAGService,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        material_type: str = MaterialType.NOTES.value,
        exam_type: Optional[str] = None,
        topic: Optional[str] = None,
        language: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Save an upload, then extract, chunk and index it.

        Returns:
            Dictionary with the material row and whether it was already indexed
        """
        mime_type = self.validate_upload(filename, content_type, content)
        if material_type not in [t.value for t in MaterialType]:
            raise BadRequestException(f"Invalid material type: {material_type}")

        storage_name = build_storage_name(user.id, filename)
        dest_path = settings.upload_dir / storage_name
        ensure_directory(dest_path.parent)
        with open(dest_path, "wb") as buffer:
            buffer.write(content)

        file_hash = compute_file_hash(str(dest_path))
        existing = db.query(StudyMaterial).filter(
            StudyMaterial.user_id == user.id,
            StudyMaterial.file_hash == file_hash,
            StudyMaterial.processing_status == ProcessingStatus.COMPLETED.value,
        ).first()
        if existing:
            if storage_name != existing.file_path:
                dest_path.unlink(missing_ok=True)
            ingestion_logger.info(f"Duplicate upload of {filename} by {user.id}, reusing {existing.id}")
            return {
                "success": True,
                "message": Messages.ALREADY_INDEXED,
                "material": existing,
                "already_indexed": True,
                "text_length": len(existing.extracted_text or ""),
            }

        material = StudyMaterial(
            user_id=user.id,
            file_name=filename,
            file_path=storage_name,
            file_type=mime_type,
            file_size=len(content),
            file_hash=file_hash,
            material_type=material_type,
            exam_type=exam_type,
            topic=topic,
            language=language or "eng",
            processing_status=ProcessingStatus.PROCESSING.value,
        )
        try:
            db.add(material)
            db.commit()
            db.refresh(material)
        except SQLAlchemyError as e:
            db.rollback()
            dest_path.unlink(missing_ok=True)
            raise DatabaseException("saving material", str(e))

        ingestion_logger.info(
            f"Processing {filename} ({format_file_size(len(content))}, {mime_type}) as {material.id}"
        )

        try:
            result = rag.ingest_material(
                str(dest_path),
                mime_type,
                material_id=material.id,
                user_id=user.id,
                topic=topic,
                file_name=filename,
                language=language,
                material_type=material_type,
                exam_type=exam_type,
            )
        except Exception as e:
            self._mark_failed(db, material, str(e))
            raise

        if not result["success"]:
            self._mark_failed(db, material, result["error"])
            raise FileProcessingException(filename, result["error"])

        extraction = result["extraction"]
        material.extracted_text = extraction["text"]
        material.extraction_method = extraction["method"]
        material.extraction_confidence = extraction["confidence"]
        material.page_count = extraction["page_count"]
        material.chunk_count = result["chunks_added"]
        material.extracted_topics = result["topics"]
        if result.get("syllabus"):
            material.syllabus_data = {**result["syllabus"], "extracted_at": utcnow().isoformat()}
        material.processing_status = ProcessingStatus.COMPLETED.value
        material.error_message = None
        db.commit()
        db.refresh(material)

        ingestion_logger.info(
            f"Material {material.id} indexed: {material.chunk_count} chunks, "
            f"method={material.extraction_method}, confidence={material.extraction_confidence}"
        )

        return {
            "success": True,
            "message": Messages.UPLOAD_SUCCESS,
            "material": material,
            "already_indexed": False,
            "text_length": len(material.extracted_text or ""),
        }

    def _mark_failed(self, db: Session, material: StudyMaterial, reason: str):
        ingestion_logger.error(f"Processing failed for {material.id}: {reason}")
        material.processing_status = ProcessingStatus.FAILED.value
        material.error_message = reason
        db.commit()

    def list_materials(self, db: Session, user: User, exam_type: Optional[str] = None) -> List[StudyMaterial]:
        query = db.query(StudyMaterial).filter(StudyMaterial.user_id == user.id)
        if exam_type:
            query = query.filter(StudyMaterial.exam_type == exam_type)
        return query.order_by(StudyMaterial.created_at.desc()).all()

    def get_material(self, db: Session, user: User, material_id: str) -> StudyMaterial:
        material = db.query(StudyMaterial).filter(
            StudyMaterial.id == material_id,
            StudyMaterial.user_id == user.id,
        ).first()
        if not material:
            raise NotFoundException("Study material", material_id)
        return material

    def get_material_file(self, db: Session, user: User, material_id: str) -> Path:
        material = self.get_material(db, user, material_id)
        path = self.resolve_path(material)
        if not path.exists():
            raise NotFoundException("File", material.file_name)
        return path

    def newest_completed(self, db: Session, user: User, limit: int) -> List[StudyMaterial]:
        return db.query(StudyMaterial).filter(
            StudyMaterial.user_id == user.id,
            StudyMaterial.processing_status == ProcessingStatus.COMPLETED.value,
            StudyMaterial.extracted_text.isnot(None),
        ).order_by(StudyMaterial.created_at.desc()).limit(limit).all()

    def delete_material(self, db: Session, user: User, rag: StudyRAGService, material_id: str) -> Dict[str, Any]:
        """Delete a material row, its indexed chunks and the stored file"""
        material = self.get_material(db, user, material_id)

        removed_chunks = rag.delete_material(material.id, user.id)
        self.resolve_path(material).unlink(missing_ok=True)

        try:
            db.delete(material)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseException("deleting material", str(e))

        ingestion_logger.info(f"Deleted material {material_id} ({removed_chunks} chunks)")
        return {
            "success": True,
            "message": Messages.MATERIAL_DELETED,
            "material_id": material_id,
            "chunks_removed": removed_chunks,
        }


# Singleton instance
material_service = MaterialService()
