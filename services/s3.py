import logging
import uuid
from datetime import datetime

import boto3
from botocore.exceptions import ClientError
from fastapi import UploadFile

from services.errors import ValidationError, UnexpectedError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


class S3Service:
    def __init__(self, bucket_name: str, client: boto3.client, region: str = "us-east-2"):
        """
        Initialize the S3 service with bucket name and region
        """
        self.bucket_name = bucket_name
        self.region = region
        self.s3 = client

    def object_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def upload_image(self, file: UploadFile, user_id: str, max_size_mb: int = 5) -> str:
        """
        Upload a post image to S3 with user ownership metadata

        Args:
            file: The image to upload
            user_id: The ID of the user uploading the image
            max_size_mb: Maximum file size in MB

        Returns:
            The URL of the stored image, to be saved on a post as-is

        Raises:
            ValidationError: If the file is not a supported image or is too large
            UnexpectedError: If the upload fails
        """
        extension = IMAGE_EXTENSIONS.get(file.content_type or "")
        if extension is None:
            raise ValidationError(
                "Unsupported image type",
                field="file",
                details={"allowed": sorted(IMAGE_EXTENSIONS)},
            )

        file_content = await file.read()
        if not file_content:
            raise ValidationError("Image file is empty", field="file")
        if len(file_content) > max_size_mb * 1024 * 1024:
            raise ValidationError(f"File size exceeds {max_size_mb}MB limit", field="file")

        # Include the user ID in the key to keep ownership visible
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        key = f"images/{user_id}/{timestamp}-{uuid.uuid4()}.{extension}"

        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=file.content_type,
                Metadata={
                    'user_id': user_id
                }
            )
        except ClientError as e:
            logger.error("S3 upload error: %s", e)
            raise UnexpectedError("Failed to upload image") from e

        logger.info("Uploaded image %s for %s", key, user_id)
        return self.object_url(key)
