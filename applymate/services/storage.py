import logging
import re
import time
from functools import lru_cache
from pathlib import PurePosixPath
from urllib.parse import unquote

import boto3
from botocore.config import Config

from applymate.config import settings

logger = logging.getLogger(__name__)

JOB_FILE_TYPES = ("resume", "coverLetter")
_LEGACY_KEY_RE = re.compile(r"((?:resumes|jobs)/.+)$")


@lru_cache(maxsize=1)
def get_s3_client():
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        config=Config(signature_version="s3v4", connect_timeout=10, read_timeout=30),
    )


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def safe_filename(filename: str | None) -> str:
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "file.pdf"


def resume_key(filename: str | None) -> str:
    return f"resumes/{_timestamp_ms()}-{safe_filename(filename)}"


def job_file_key(user_id: str, job_id: str, file_type: str, filename: str | None) -> str:
    if file_type not in JOB_FILE_TYPES:
        raise ValueError(f"Unknown job file type: {file_type}")
    return f"jobs/{user_id}/{job_id}/{file_type}/{_timestamp_ms()}-{safe_filename(filename)}"


def resolve_key(file_url: str) -> str:
    """Turn a stored value into an object key. Older rows stored the full object URL."""
    if not file_url.startswith(("http://", "https://")):
        return file_url
    path = unquote(file_url.split("?", 1)[0])
    match = _LEGACY_KEY_RE.search(path)
    if not match:
        raise ValueError("Stored file URL does not contain an object key")
    return match.group(1)


def upload_bytes(key: str, data: bytes, content_type: str = "application/pdf") -> str:
    get_s3_client().put_object(
        Bucket=settings.s3_bucket,
        Key=key,
        Body=data,
        ContentType=content_type,
    )
    logger.info("Uploaded s3://%s/%s (%d bytes)", settings.s3_bucket, key, len(data))
    return key


def delete_object(key: str | None) -> bool:
    """Best-effort delete. Returns False (and logs) instead of raising."""
    if not key:
        return False
    try:
        get_s3_client().delete_object(Bucket=settings.s3_bucket, Key=resolve_key(key))
        logger.info("Deleted s3 object %s", key)
        return True
    except Exception as e:
        logger.warning("Failed to delete s3 object %s: %s", key, e)
        return False


def signed_url(key: str, expires_in: int | None = None, inline: bool = False) -> str:
    """Time-limited GET URL for an object key (or legacy stored URL)."""
    object_key = resolve_key(key)
    params = {"Bucket": settings.s3_bucket, "Key": object_key}
    if inline:
        filename = PurePosixPath(object_key).name
        params["ResponseContentDisposition"] = f'inline; filename="{filename}"'
        params["ResponseContentType"] = "application/pdf"
    return get_s3_client().generate_presigned_url(
        "get_object",
        Params=params,
        ExpiresIn=expires_in or settings.signed_url_expire_seconds,
    )
