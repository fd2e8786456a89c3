"""Tests for S3 client module."""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from matter_pki.lib.errors import ValidationError
from matter_pki.lib.s3_client import S3Client


class TestS3Client:
    """Tests for S3Client class."""

    @pytest.fixture
    def mock_boto3(self) -> Generator[MagicMock]:
        """Mock boto3 for S3."""
        with patch("matter_pki.lib.s3_client.boto3") as mock:
            yield mock

    def test_get_bucket_region_returns_location(self, mock_boto3: MagicMock) -> None:
        """Should return the bucket's location constraint."""
        mock_s3 = MagicMock()
        mock_s3.get_bucket_location.return_value = {"LocationConstraint": "eu-west-1"}
        mock_boto3.client.return_value = mock_s3

        client = S3Client()
        result = client.get_bucket_region("crl-bucket")

        assert result == "eu-west-1"
        mock_s3.get_bucket_location.assert_called_once_with(Bucket="crl-bucket")

    def test_get_bucket_region_defaults_to_us_east_1(self, mock_boto3: MagicMock) -> None:
        """Should map a null location constraint to us-east-1."""
        mock_s3 = MagicMock()
        mock_s3.get_bucket_location.return_value = {"LocationConstraint": None}
        mock_boto3.client.return_value = mock_s3

        client = S3Client()

        assert client.get_bucket_region("crl-bucket") == "us-east-1"

    def test_missing_bucket_raises_validation_error(self, mock_boto3: MagicMock) -> None:
        """Should report a missing CRL bucket as invalid input."""
        mock_s3 = MagicMock()
        mock_s3.get_bucket_location.side_effect = ClientError(
            {"Error": {"Code": "NoSuchBucket", "Message": "The specified bucket does not exist"}},
            "GetBucketLocation",
        )
        mock_boto3.client.return_value = mock_s3

        client = S3Client()
        with pytest.raises(ValidationError, match="crlBucketName"):
            client.get_bucket_region("crl-bucket")

    def test_other_errors_propagate(self, mock_boto3: MagicMock) -> None:
        """Should raise ClientError for anything but a missing bucket."""
        mock_s3 = MagicMock()
        mock_s3.get_bucket_location.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "GetBucketLocation"
        )
        mock_boto3.client.return_value = mock_s3

        client = S3Client()
        with pytest.raises(ClientError):
            client.get_bucket_region("crl-bucket")
