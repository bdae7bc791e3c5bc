import os
import io
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
from PIL import Image
import boto3

logger = logging.getLogger(__name__)

FOLDER = "uploads"


def _bucket():
    return os.getenv("R2_BUCKET")


@lru_cache(maxsize=1)
def get_client():
    return boto3.client(
        service_name="s3",
        endpoint_url=f"https://{os.getenv('CLOUDFLARE_ACCOUNT_ID')}.r2.cloudflarestorage.com",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name="auto",
    )


def compress_image(data: bytes, max_width=1400, quality=80):
    img = Image.open(io.BytesIO(data))
    img = img.convert("RGB")

    # Resize while keeping aspect ratio
    w, h = img.size
    if w > max_width:
        new_height = int(h * (max_width / w))
        img = img.resize((max_width, new_height), Image.LANCZOS)

    buffer = io.BytesIO()

    try:
        img.save(buffer, format="WEBP", quality=quality, method=6)
        ext = "webp"
    except (OSError, KeyError):
        logger.warning("WebP encoding unavailable, falling back to JPEG")

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality, optimize=True)
        ext = "jpg"

    buffer.seek(0)
    return buffer, ext


def upload_to_s3(buffer: io.BytesIO, ext: str, original_name: str):
    base = os.path.splitext(os.path.basename(original_name or "item"))[0]

    ts = int(datetime.now(timezone.utc).timestamp())
    key = f"{FOLDER}/{base}-{ts}.{ext}"

    get_client().upload_fileobj(buffer, _bucket(), key)

    return key


def generate_signed_url(key: Optional[str], expires_in=3600):
    if not key:
        return None

    try:
        return get_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": _bucket(), "Key": key},
            ExpiresIn=expires_in,
        )
    except Exception:
        logger.exception("Error generating signed URL for %s", key)
        return None


def delete_s3_object(key: Optional[str]):
    if not key:
        return

    try:
        get_client().delete_object(Bucket=_bucket(), Key=key)
    except Exception:
        logger.exception("Error deleting S3 object %s", key)


def with_image_url(item) -> dict:
    data = item.model_dump()
    data["image"] = generate_signed_url(item.image)
    return data


def get_all_urls(db_items: list):
    return [with_image_url(item) for item in db_items]
