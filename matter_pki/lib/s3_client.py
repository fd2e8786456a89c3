"""S3 client for CRL bucket checks."""

import boto3
from botocore.exceptions import ClientError

from .errors import ValidationError


class S3Client:
    """S3 client for the revocation list bucket."""

    def __init__(self, region: str = "us-east-1") -> None:
        """Initialize S3 client.

        Args:
            region: AWS region for S3 client
        """
        self.client = boto3.client("s3", region_name=region)

    def get_bucket_region(self, bucket_name: str) -> str:
        """Return the region of the CRL bucket, verifying it exists.

        Authorities embed the bucket name permanently, so a missing bucket is
        reported before any authority is created.

        Args:
            bucket_name: S3 bucket name

        Returns:
            Bucket region (us-east-1 for buckets without a location constraint)

        Raises:
            ValidationError: If the bucket does not exist
            ClientError: For any other S3 failure
        """
        try:
            response = self.client.get_bucket_location(Bucket=bucket_name)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("NoSuchBucket", "404"):
                raise ValidationError("crlBucketName", bucket_name, "bucket does not exist") from e
            raise
        return response.get("LocationConstraint") or "us-east-1"
