"""
Local image storage for profile pictures and post images
Files live under UPLOAD_DIR and are referenced by their path relative to it.
"""

import os
import uuid
import aiofiles
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError
import io
import logging

from .errors import ValidationError

logger = logging.getLogger(__name__)

# Configuration
UPLOAD_DIR = os.getenv('UPLOAD_DIR', 'uploads')
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.gif'}
MAX_IMAGE_SIZE = (1024, 1024)  # Max dimensions

PROFILE_PICTURES = 'profile_pictures'
POST_IMAGES = 'posts'

for _folder in (PROFILE_PICTURES, POST_IMAGES):
    os.makedirs(os.path.join(UPLOAD_DIR, _folder), exist_ok=True)

class FileStorageManager:
    """Validates, downsizes and stores uploaded images"""

    @staticmethod
    def generate_filename(owner: str) -> str:
        # Stored images are always re-encoded as JPEG
        return f"{owner}_{uuid.uuid4().hex[:12]}.jpg"

    @staticmethod
    def get_file_path(relative_path: str) -> str:
        return os.path.join(UPLOAD_DIR, relative_path)

    @staticmethod
    def validate_image(filename: str, content: bytes) -> None:
        if len(content) > MAX_FILE_SIZE:
            raise ValidationError("File too large. Max size is 5MB")

        file_ext = os.path.splitext(filename or '')[1].lower()
        if file_ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}")

        try:
            with Image.open(io.BytesIO(content)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise ValidationError("Invalid image file")

    @staticmethod
    def resize_image(content: bytes) -> bytes:
        """Shrink to MAX_IMAGE_SIZE keeping aspect ratio, re-encode as JPEG"""
        with Image.open(io.BytesIO(content)) as img:
            if img.mode != 'RGB':
                img = img.convert('RGB')
            img.thumbnail(MAX_IMAGE_SIZE, Image.Resampling.LANCZOS)
            output = io.BytesIO()
            img.save(output, format='JPEG', quality=85, optimize=True)
            return output.getvalue()

    async def save_image(self, folder: str, owner: str, file: UploadFile) -> str:
        """Store an uploaded image and return its path relative to UPLOAD_DIR"""
        content = await file.read()
        self.validate_image(file.filename, content)

        relative_path = f"{folder}/{self.generate_filename(owner)}"
        file_path = self.get_file_path(relative_path)
        try:
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(self.resize_image(content))
        except Exception:
            if os.path.exists(file_path):
                os.remove(file_path)
            raise
        logger.info(f"Stored image {relative_path}")
        return relative_path

    async def save_profile_picture(self, user_id: int, file: UploadFile) -> str:
        return await self.save_image(PROFILE_PICTURES, f"user_{user_id}", file)

    async def save_post_image(self, user_id: int, file: UploadFile) -> str:
        return await self.save_image(POST_IMAGES, f"post_{user_id}", file)

    def delete_image(self, relative_path: str) -> bool:
        """Remove a stored image; paths escaping UPLOAD_DIR are ignored"""
        root = os.path.abspath(UPLOAD_DIR)
        file_path = os.path.abspath(self.get_file_path(relative_path))
        if not file_path.startswith(root + os.sep):
            logger.warning(f"Refusing to delete {relative_path} outside upload dir")
            return False
        if os.path.exists(file_path):
            os.remove(file_path)
            return True
        return False

# Global instance
file_storage = FileStorageManager()
