"""
File storage for uploaded images and invoice PDFs.

Files go to Amazon S3 when AWS credentials are configured, otherwise to the
local ``uploads/`` and ``invoices/`` folders which the app serves statically.
"""

import os
import time
import logging
import secrets
from pathlib import Path
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from werkzeug.datastructures import FileStorage

from validators import validate_image_upload, sanitize_filename

logger = logging.getLogger(__name__)

IMAGE_CATEGORIES = ('requirements', 'trial-notes')
DEFAULT_PRESIGN_EXPIRY = 3600


class StorageService:
    """Stores files locally or in S3 depending on configuration."""

    def __init__(self, config):
        self.region = config.get('AWS_REGION')
        self.access_key = config.get('AWS_ACCESS_KEY_ID')
        self.secret_key = config.get('AWS_SECRET_ACCESS_KEY')
        self.upload_bucket = config.get('AWS_S3_BUCKET') or 'thedarji-uploads'
        self.invoice_bucket = config.get('AWS_S3_INVOICE_BUCKET') or 'thedarji-invoices'
        self.upload_folder = Path(config.get('UPLOAD_FOLDER') or 'uploads')
        self.invoice_folder = Path(config.get('INVOICE_FOLDER') or 'invoices')
        self.max_upload_size = config.get('MAX_UPLOAD_SIZE') or 5 * 1024 * 1024
        self._client = None

    @property
    def s3_enabled(self) -> bool:
        return bool(self.region and self.access_key and self.secret_key)

    @property
    def mode(self) -> str:
        return 'S3' if self.s3_enabled else 'Local'

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                region_name=self.region or 'ap-south-1',
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
            )
        return self._client

    def public_url(self, bucket: str, key: str) -> str:
        return f"https://{bucket}.s3.{self.region or 'ap-south-1'}.amazonaws.com/{key}"

    def ensure_directories(self):
        """Create local storage folders."""
        for category in IMAGE_CATEGORIES:
            (self.upload_folder / category).mkdir(parents=True, exist_ok=True)
        self.invoice_folder.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # IMAGES
    # =========================================================================

    def save_image(self, file: FileStorage, category: str = 'requirements') -> Dict[str, Optional[str]]:
        """
        Validate and store one uploaded image.

        Returns:
            {'url': ..., 's3_key': ...}; s3_key is None in local mode
        """
        safe_name = validate_image_upload(file, self.max_upload_size)
        timestamp = int(time.time() * 1000)

        if self.s3_enabled:
            key = f"uploads/{timestamp}-{safe_name}"
            self.client.upload_fileobj(
                file.stream, self.upload_bucket, key,
                ExtraArgs={'ContentType': file.mimetype}
            )
            logger.info(f"Uploaded image to s3://{self.upload_bucket}/{key}")
            return {'url': self.public_url(self.upload_bucket, key), 's3_key': key}

        folder = self.upload_folder / category
        folder.mkdir(parents=True, exist_ok=True)
        field = (file.name or 'image').split('[')[0] or 'image'
        ext = os.path.splitext(safe_name)[1].lower()
        name = f"{field}-{timestamp}-{secrets.randbelow(10 ** 9)}{ext}"
        file.save(str(folder / name))
        logger.debug(f"Saved image locally: {folder / name}")
        return {'url': f"/uploads/{category}/{name}", 's3_key': None}

    def save_images(self, files: List[FileStorage], category: str = 'requirements') -> List[Dict[str, Optional[str]]]:
        return [self.save_image(f, category) for f in files if f and f.filename]

    # =========================================================================
    # INVOICES
    # =========================================================================

    def invoice_path(self, filename: str) -> Path:
        return self.invoice_folder / sanitize_filename(filename)

    def store_invoice(self, local_path: Path) -> Dict[str, Optional[str]]:
        """
        Mirror a generated invoice PDF to S3 when configured.

        The local copy is always kept; an S3 failure falls back to it.
        """
        pdf_path = f"{self.invoice_folder.name}/{local_path.name}"
        result = {'pdf_path': pdf_path, 's3_key': None, 'pdf_url': f"/{pdf_path}"}
        if not self.s3_enabled:
            return result

        key = f"invoices/{local_path.name}"
        try:
            with open(local_path, 'rb') as fh:
                self.client.upload_fileobj(fh, self.invoice_bucket, key,
                                           ExtraArgs={'ContentType': 'application/pdf'})
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"S3 upload failed for {key}, keeping local invoice: {e}")
            return result

        logger.info(f"Uploaded invoice to s3://{self.invoice_bucket}/{key}")
        result.update({'s3_key': key, 'pdf_url': self.public_url(self.invoice_bucket, key)})
        return result

    # =========================================================================
    # READ / DELETE
    # =========================================================================

    def presigned_url(self, key: str, bucket: Optional[str] = None,
                      expires_in: int = DEFAULT_PRESIGN_EXPIRY) -> str:
        return self.client.generate_presigned_url(
            'get_object',
            Params={'Bucket': bucket or self.upload_bucket, 'Key': key},
            ExpiresIn=expires_in,
        )

    def read_bytes(self, key: str, bucket: Optional[str] = None) -> bytes:
        response = self.client.get_object(Bucket=bucket or self.upload_bucket, Key=key)
        return response['Body'].read()

    def delete_object(self, key: str, bucket: Optional[str] = None):
        self.client.delete_object(Bucket=bucket or self.upload_bucket, Key=key)
        logger.info(f"Deleted s3://{bucket or self.upload_bucket}/{key}")

    def delete_local(self, relative_path: Optional[str]) -> bool:
        """Remove a locally stored file; missing files are ignored."""
        if not relative_path:
            return False
        path = Path(relative_path.lstrip('/'))
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted local file: {path}")
        return True

    def delete_stored(self, s3_key: Optional[str] = None, local_path: Optional[str] = None,
                      bucket: Optional[str] = None):
        """Delete by S3 key when present, else by local path."""
        if s3_key and self.s3_enabled:
            try:
                self.delete_object(s3_key, bucket)
            except (BotoCoreError, ClientError) as e:
                logger.warning(f"Failed to delete s3 object {s3_key}: {e}")
        if local_path:
            self.delete_local(local_path)


def get_storage_service(config=None) -> StorageService:
    """Build a storage service from the Flask app config (or an explicit mapping)."""
    if config is None:
        from flask import current_app
        config = current_app.config
    return StorageService(config)
