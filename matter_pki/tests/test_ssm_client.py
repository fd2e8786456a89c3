"""Tests for SSM client module."""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from matter_pki.lib.ssm_client import SSMClient


@pytest.fixture
def mock_boto3() -> Generator[MagicMock]:
    with patch("matter_pki.lib.ssm_client.boto3") as mock:
        yield mock


class TestGetValue:
    """Tests for SSMClient.get_value."""

    def test_returns_value(self, mock_boto3: MagicMock) -> None:
        """Should return the parameter value."""
        mock_client = mock_boto3.client.return_value
        mock_client.get_parameter.return_value = {"Parameter": {"Value": "arn"}}

        client = SSMClient()

        assert client.get_value("/MatterPKI/x") == "arn"
        mock_client.get_parameter.assert_called_once_with(Name="/MatterPKI/x", WithDecryption=False)

    def test_returns_none_on_parameter_not_found(self, mock_boto3: MagicMock) -> None:
        """Should treat a missing parameter as absent."""
        mock_client = mock_boto3.client.return_value
        mock_client.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ParameterNotFound", "Message": "not found"}},
            "GetParameter",
        )

        client = SSMClient()

        assert client.get_value("/MatterPKI/x") is None

    def test_reraises_non_parameter_not_found_errors(self, mock_boto3: MagicMock) -> None:
        """Should re-raise ClientError for non-ParameterNotFound codes."""
        mock_client = mock_boto3.client.return_value
        mock_client.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "no access"}},
            "GetParameter",
        )

        client = SSMClient()
        with pytest.raises(ClientError):
            client.get_value("/MatterPKI/x")


class TestSigningRequest:
    """Tests for CSR hand-off parameters."""

    def test_put_signing_request_path_and_type(self, mock_boto3: MagicMock) -> None:
        """Should write a String parameter under the stack and authority."""
        mock_client = mock_boto3.client.return_value

        client = SSMClient(prefix="/MatterPKI/")
        path = client.put_signing_request("MatterStackPAI", "PAI0", "-----BEGIN\\n")

        assert path == "/MatterPKI/MatterStackPAI/PAI0/csr"
        mock_client.put_parameter.assert_called_once_with(
            Name="/MatterPKI/MatterStackPAI/PAI0/csr",
            Value="-----BEGIN\\n",
            Type="String",
            Overwrite=True,
        )

    def test_get_signing_request_missing_raises(self, mock_boto3: MagicMock) -> None:
        """Should raise ValueError naming the path when no CSR was stored."""
        mock_client = mock_boto3.client.return_value
        mock_client.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ParameterNotFound", "Message": "not found"}},
            "GetParameter",
        )

        client = SSMClient()
        with pytest.raises(ValueError, match="/MatterPKI/MatterStackPAI/PAI0/csr"):
            client.get_signing_request("MatterStackPAI", "PAI0")


class TestCertificateArn:
    """Tests for certificate ARN records."""

    def test_record_certificate_arn(self, mock_boto3: MagicMock) -> None:
        """Should store the issued certificate ARN."""
        mock_client = mock_boto3.client.return_value

        SSMClient().record_certificate_arn("MatterStackPAA", "PAA", "cert-arn")

        assert mock_client.put_parameter.call_args[1]["Name"] == "/MatterPKI/MatterStackPAA/PAA/certificate-arn"
        assert mock_client.put_parameter.call_args[1]["Value"] == "cert-arn"

    def test_get_certificate_arn(self, mock_boto3: MagicMock) -> None:
        """Should read back the certificate ARN."""
        mock_client = mock_boto3.client.return_value
        mock_client.get_parameter.return_value = {"Parameter": {"Value": "cert-arn"}}

        assert SSMClient().get_certificate_arn("MatterStackPAA", "PAA") == "cert-arn"
