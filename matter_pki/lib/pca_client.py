"""AWS Private CA client for authority creation, signing and activation."""

import logging

import boto3
from botocore.config import Config
from mypy_boto3_acm_pca import ACMPCAClient

logger = logging.getLogger(__name__)

# Waiter polling for CSR generation and certificate issuance
WAITER_CONFIG = {"Delay": 3, "MaxAttempts": 60}


class PCAClient:
    """Thin AWS Private CA wrapper; one instance per region."""

    def __init__(self, region: str = "us-east-1", max_attempts: int = 10) -> None:
        """Initialize ACM PCA client.

        Issuance is rate limited per authority, so throttled calls are retried
        by botocore's adaptive retry mode rather than by callers.

        Args:
            region: AWS region for the client
            max_attempts: Total attempts per call, including retries
        """
        self.region = region
        self.client: ACMPCAClient = boto3.client(
            "acm-pca",
            region_name=region,
            config=Config(retries={"max_attempts": max_attempts, "mode": "adaptive"}),
        )

    def create_certificate_authority(
        self,
        authority_type: str,
        key_algorithm: str,
        signing_algorithm: str,
        subject: dict,
        revocation_configuration: dict,
        tags: dict[str, str],
        idempotency_token: str,
        key_storage_security_standard: str = "FIPS_140_2_LEVEL_3_OR_HIGHER",
    ) -> str:
        """Create a ROOT or SUBORDINATE authority.

        Returns:
            ARN of the new certificate authority
        """
        response = self.client.create_certificate_authority(
            CertificateAuthorityConfiguration={
                "KeyAlgorithm": key_algorithm,
                "SigningAlgorithm": signing_algorithm,
                "Subject": subject,
            },
            RevocationConfiguration=revocation_configuration,
            CertificateAuthorityType=authority_type,
            IdempotencyToken=idempotency_token,
            KeyStorageSecurityStandard=key_storage_security_standard,
            Tags=[{"Key": key, "Value": value} for key, value in tags.items()],
        )
        return response["CertificateAuthorityArn"]

    def get_csr(self, authority_arn: str) -> str:
        """Wait for and return the authority's CSR in PEM form."""
        waiter = self.client.get_waiter("certificate_authority_csr_created")
        waiter.wait(CertificateAuthorityArn=authority_arn, WaiterConfig=WAITER_CONFIG)
        response = self.client.get_certificate_authority_csr(CertificateAuthorityArn=authority_arn)
        return response["Csr"]

    def issue_certificate(
        self,
        authority_arn: str,
        csr: str,
        signing_algorithm: str,
        template_arn: str,
        validity: dict,
        idempotency_token: str,
        api_passthrough: dict | None = None,
    ) -> str:
        """Ask authority_arn to sign csr.

        Returns:
            ARN of the issued certificate
        """
        kwargs = {
            "CertificateAuthorityArn": authority_arn,
            "Csr": csr.encode("utf-8"),
            "SigningAlgorithm": signing_algorithm,
            "TemplateArn": template_arn,
            "Validity": validity,
            "IdempotencyToken": idempotency_token,
        }
        if api_passthrough is not None:
            kwargs["ApiPassthrough"] = api_passthrough

        response = self.client.issue_certificate(**kwargs)
        return response["CertificateArn"]

    def get_certificate(self, authority_arn: str, certificate_arn: str) -> str:
        """Wait for issuance and return the certificate body in PEM form."""
        waiter = self.client.get_waiter("certificate_issued")
        waiter.wait(
            CertificateAuthorityArn=authority_arn,
            CertificateArn=certificate_arn,
            WaiterConfig=WAITER_CONFIG,
        )
        response = self.client.get_certificate(
            CertificateAuthorityArn=authority_arn, CertificateArn=certificate_arn
        )
        return response["Certificate"]

    def get_authority_certificate(self, authority_arn: str) -> str:
        """Return the authority's own certificate in PEM form."""
        response = self.client.get_certificate_authority_certificate(
            CertificateAuthorityArn=authority_arn
        )
        return response["Certificate"]

    def import_authority_certificate(
        self, authority_arn: str, certificate: str, certificate_chain: str | None = None
    ) -> None:
        """Install the signed certificate, which moves the authority to ACTIVE."""
        kwargs = {
            "CertificateAuthorityArn": authority_arn,
            "Certificate": certificate.encode("utf-8"),
        }
        if certificate_chain:
            kwargs["CertificateChain"] = certificate_chain.encode("utf-8")
        self.client.import_certificate_authority_certificate(**kwargs)

    def describe_authority(self, authority_arn: str) -> dict:
        """Return the CertificateAuthority description."""
        response = self.client.describe_certificate_authority(
            CertificateAuthorityArn=authority_arn
        )
        return response["CertificateAuthority"]

    def get_subject_custom_attributes(self, authority_arn: str) -> list[dict[str, str]]:
        """Return the custom attributes of the authority's configured subject."""
        authority = self.describe_authority(authority_arn)
        subject = authority["CertificateAuthorityConfiguration"]["Subject"]
        return subject.get("CustomAttributes", [])
