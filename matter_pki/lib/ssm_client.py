"""SSM client for handing CSRs and signing state between provisioning steps."""

import boto3
from botocore.exceptions import ClientError
from mypy_boto3_ssm import SSMClient as SSMClientType


class SSMClient:
    """SSM Parameter Store client for provisioning hand-off values."""

    def __init__(self, region: str = "us-east-1", prefix: str = "/MatterPKI") -> None:
        """Initialize SSM client.

        Args:
            region: AWS region for SSM client
            prefix: Parameter path prefix
        """
        self.client: SSMClientType = boto3.client("ssm", region_name=region)
        self.prefix = prefix.rstrip("/")

    def csr_path(self, stack_name: str, logical_id: str) -> str:
        return f"{self.prefix}/{stack_name}/{logical_id}/csr"

    def certificate_arn_path(self, stack_name: str, logical_id: str) -> str:
        return f"{self.prefix}/{stack_name}/{logical_id}/certificate-arn"

    def put_value(self, name: str, value: str) -> None:
        """Write a String parameter, replacing any previous version."""
        self.client.put_parameter(Name=name, Value=value, Type="String", Overwrite=True)

    def get_value(self, name: str) -> str | None:
        """Read a String parameter.

        Returns:
            Parameter value, or None if the parameter does not exist

        Raises:
            ClientError: For any error other than ParameterNotFound
        """
        try:
            response = self.client.get_parameter(Name=name, WithDecryption=False)
            return response["Parameter"]["Value"]
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "ParameterNotFound":
                return None
            raise

    def put_signing_request(self, stack_name: str, logical_id: str, escaped_csr: str) -> str:
        """Store an escaped CSR and return its parameter path."""
        path = self.csr_path(stack_name, logical_id)
        self.put_value(path, escaped_csr)
        return path

    def get_signing_request(self, stack_name: str, logical_id: str) -> str:
        """Read back an escaped CSR.

        Raises:
            ValueError: If no CSR was stored for the authority
        """
        path = self.csr_path(stack_name, logical_id)
        value = self.get_value(path)
        if value is None:
            raise ValueError(f"CSR not found in SSM. Path checked: {path}")
        return value

    def record_certificate_arn(self, stack_name: str, logical_id: str, certificate_arn: str) -> None:
        self.put_value(self.certificate_arn_path(stack_name, logical_id), certificate_arn)

    def get_certificate_arn(self, stack_name: str, logical_id: str) -> str | None:
        return self.get_value(self.certificate_arn_path(stack_name, logical_id))
