"""Provisioning configuration dataclasses."""

from dataclasses import dataclass

ROOT_CA_TEMPLATE_ARN = "arn:aws:acm-pca:::template/RootCACertificate_APIPassthrough/V1"
SUBORDINATE_CA_TEMPLATE_ARN = (
    "arn:aws:acm-pca:::template/BlankSubordinateCACertificate_PathLen0_APIPassthrough/V1"
)
DAC_TEMPLATE_ARN_PATTERN = (
    "arn:aws:acm-pca:::template/BlankEndEntityCertificate_CriticalBasicConstraints_APIPassthrough/V*"
)
SUBORDINATE_CA_TEMPLATE_ARN_PATTERN = (
    "arn:aws:acm-pca:::template/BlankSubordinateCACertificate_PathLen0_APIPassthrough/V*"
)

MATTER_PKI_TAG = "matterPKITag"  # attached to every resource of the PKI
MATTER_CA_TYPE_TAG = "matterCAType"  # "paa" or "pai" only

# Fixed for every authority
KEY_ALGORITHM = "EC_prime256v1"
SIGNING_ALGORITHM = "SHA256WITHECDSA"
KEY_STORAGE_SECURITY_STANDARD = "FIPS_140_2_LEVEL_3_OR_HIGHER"

# Retain-on-delete and retain-on-replace, declared for every authority
DELETION_POLICY = {"DeletionPolicy": "Retain", "UpdateReplacePolicy": "Retain"}


@dataclass
class PKIConfig:
    """Provisioning defaults with no AWS dependencies."""

    region: str = "us-east-1"
    prefix: str = ""
    root_validity_days: int = 3650
    subordinate_validity_days: int = 3600
    crl_expiration_days: int = 90
    ssm_prefix: str = "/MatterPKI"
    roles_path: str = "/MatterPKI/"
    max_workers: int = 4
    max_attempts: int = 10

    def stack_name(self, subordinate: bool) -> str:
        """Name of this deployment, used to namespace stored parameters."""
        return f"{self.prefix}MatterStack{'PAI' if subordinate else 'PAA'}"
