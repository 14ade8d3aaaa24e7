import os
import io
import re
import uuid
import logging
from datetime import datetime, timezone
from PIL import Image
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.utils.errors import AssetDeleteFailed, AssetUploadFailed

logger = logging.getLogger(__name__)

FOLDER = "finds"


def compress_image(data: bytes, max_width=1400, quality=80):
    img = Image.open(io.BytesIO(data))
    img = img.convert("RGB")

    # Resize while keeping aspect ratio
    w, h = img.size
    if w > max_width:
        new_height = int(h * (max_width / w))
        img = img.resize((max_width, new_height), Image.LANCZOS)

    # Try WebP first
    buffer = io.BytesIO()

    try:
        img.save(buffer, format="WEBP", quality=quality, method=6)
        ext = "webp"
    except (OSError, KeyError) as e:
        logger.warning("WebP failed, falling back to JPEG: %s", e)

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality, optimize=True)
        ext = "jpg"

    return buffer.getvalue(), ext


def make_object_key(suggested_name: str):
    base = os.path.basename(suggested_name or "image")
    base = re.sub(r"[^a-zA-Z0-9.]", "_", base)

    ts = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"{FOLDER}/{ts}_{uuid.uuid4().hex}_{base}"


class S3AssetStore:
    """Asset Store over an S3-compatible bucket (Cloudflare R2 in production).

    Objects are served publicly under ``public_url``; the URL handed back by
    ``upload_asset`` is what gets stored on a Find, and ``delete_asset``
    accepts the same URL back.
    """

    def __init__(self, client, bucket: str, public_url: str):
        self.client = client
        self.bucket = bucket
        self.public_url = public_url.rstrip("/")

    @classmethod
    def from_env(cls):
        account_id = os.getenv("CLOUDFLARE_ACCOUNT_ID")

        client = boto3.client(
            service_name="s3",
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            region_name="auto",
        )

        return cls(client, os.getenv("R2_BUCKET"), os.getenv("R2_PUBLIC_URL", ""))

    def url_for_key(self, key: str):
        return f"{self.public_url}/{key}"

    def key_for_url(self, url: str):
        prefix = f"{self.public_url}/"

        if not url.startswith(prefix):
            return None

        return url[len(prefix):]

    def upload_asset(self, data: bytes, suggested_name: str) -> str:
        key = make_object_key(suggested_name)

        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error uploading image %s: %s", key, e)
            raise AssetUploadFailed("Failed to upload image") from e

        return self.url_for_key(key)

    def delete_asset(self, url: str) -> None:
        key = self.key_for_url(url)

        # not one of ours, nothing to reclaim
        if key is None:
            return

        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise AssetDeleteFailed(f"Error deleting S3 object {key}") from e
