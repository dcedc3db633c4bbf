import logging
import os
import uuid
from pathlib import Path

from fastapi import UploadFile, HTTPException

from clausecompare.config.config import Config

logger = logging.getLogger(__name__)


class FileHandler:
    """Simple file upload and cleanup"""

    def __init__(
        self,
        upload_dir: Path = Config.UPLOAD_DIR,
        allowed_extensions=Config.ALLOWED_EXTENSIONS,
        max_file_size: int = Config.MAX_UPLOAD_SIZE
    ):
        self.upload_dir = Path(upload_dir)
        self.allowed_extensions = set(allowed_extensions)
        self.max_file_size = max_file_size
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    async def save_upload(self, file: UploadFile) -> str:
        """Save uploaded file"""
        # Validate extension
        file_ext = Path(file.filename or "").suffix.lower()
        if file_ext not in self.allowed_extensions:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file type '{file_ext}'. Allowed: {', '.join(sorted(self.allowed_extensions))}"
            )

        # Unique filename keeps the original extension for format detection
        unique_filename = f"{uuid.uuid4()}{file_ext}"
        file_path = self.upload_dir / unique_filename

        try:
            with open(file_path, "wb") as buffer:
                total_size = 0
                while chunk := await file.read(8192):
                    total_size += len(chunk)

                    if total_size > self.max_file_size:
                        raise HTTPException(
                            status_code=400,
                            detail=f"File too large. Max: {self.max_file_size // (1024 * 1024)}MB"
                        )

                    buffer.write(chunk)

            logger.info(f"Saved upload '{file.filename}' ({total_size} bytes) -> {file_path}")
            return str(file_path)

        except HTTPException:
            self._remove(file_path)
            raise
        except Exception as e:
            self._remove(file_path)
            raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")

    async def cleanup(self, file_path: str):
        """Remove temporary file"""
        try:
            if os.path.exists(file_path):
                os.remove(file_path)
                logger.info(f"Cleaned up: {file_path}")
        except OSError as e:
            logger.warning(f"Cleanup warning: {e}")

    @staticmethod
    def _remove(file_path: Path):
        if file_path.exists():
            os.remove(file_path)
