import logging
import time
from typing import BinaryIO, Union

import boto3

from template_admin.config import AWS_REGION, S3_BUCKET

log = logging.getLogger(__name__)

IMAGE_PREFIX = "product-images/"


def image_key(slot: int, now_ms: int | None = None) -> str:
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{IMAGE_PREFIX}product_{ts}_{slot}.jpg"


class ImageStore:
    """Public-read S3 bucket holding uploaded template images."""

    def __init__(self, bucket: str, region: str, *, client=None):
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    @classmethod
    def from_config(cls) -> "ImageStore":
        return cls(S3_BUCKET, AWS_REGION)

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def save_image(self, key: str, fh: Union[BinaryIO, bytes, bytearray]) -> str:
        body = bytes(fh) if isinstance(fh, (bytes, bytearray)) else fh.read()
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType="image/jpeg",
            ACL="public-read",
        )
        url = self.public_url(key)
        log.info("image uploaded key=%s url=%s", key, url)
        return url

    def delete_image(self, url_or_key: str) -> None:
        key = url_or_key
        prefix = self.public_url("")
        if key.startswith(prefix):
            key = key[len(prefix):]
        self.client.delete_object(Bucket=self.bucket, Key=key)
        log.info("image deleted key=%s", key)
