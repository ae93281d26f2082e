"""Where uploaded media lives: the local upload folder or an S3 bucket."""
import logging
import os
import boto3
from botocore.config import Config as BotoConfig
from flask import current_app

logger = logging.getLogger(__name__)


def _get_client():
    return boto3.client(
        "s3",
        endpoint_url=current_app.config["S3_ENDPOINT_URL"] or None,
        aws_access_key_id=current_app.config["S3_ACCESS_KEY"],
        aws_secret_access_key=current_app.config["S3_SECRET_KEY"],
        region_name=current_app.config["S3_REGION"],
        config=BotoConfig(signature_version="s3v4"),
    )


def _use_s3():
    return current_app.config["STORAGE_BACKEND"] == "s3"


def get_public_url(storage_key):
    """Public URL for a storage key such as ``images/123-abc.jpg``."""
    if _use_s3():
        base = current_app.config["S3_PUBLIC_URL"].rstrip("/")
    else:
        base = current_app.config["UPLOAD_URL_PREFIX"].rstrip("/")
    return f"{base}/{storage_key}"


def save(storage_key, data, content_type):
    """Store bytes under ``storage_key`` and return their public URL."""
    if _use_s3():
        _get_client().put_object(
            Bucket=current_app.config["S3_BUCKET_NAME"],
            Key=storage_key,
            Body=data,
            ContentType=content_type,
            ACL="public-read",
        )
    else:
        path = os.path.join(current_app.config["UPLOAD_FOLDER"], storage_key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(data)

    logger.info("Stored %s (%d bytes, %s)", storage_key, len(data), content_type)
    return get_public_url(storage_key)


def delete(storage_key):
    if _use_s3():
        _get_client().delete_object(
            Bucket=current_app.config["S3_BUCKET_NAME"], Key=storage_key
        )
        return
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], storage_key)
    if os.path.exists(path):
        os.remove(path)
