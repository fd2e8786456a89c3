"""Domain models for Matter PKI provisioning."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from .config import DELETION_POLICY, KEY_ALGORITHM, SIGNING_ALGORITHM
from .errors import ValidationError

if TYPE_CHECKING:
    from .subject import SubjectAttributeSet

CONSOLE_LINK_TEMPLATE = (
    "https://console.aws.amazon.com/acm-pca/home?region={region}#/details?arn={arn}&tab=certificate"
)
END_DATE_FORMAT = "%Y%m%d%H%M%S"


class Tier(Enum):
    """Authority tier, mapped to the AWS Private CA authority type."""

    ROOT = "ROOT"
    SUBORDINATE = "SUBORDINATE"

    @property
    def ca_type_tag(self) -> str:
        """Value of the matterCAType tag: 'paa' for roots, 'pai' for subordinates."""
        return "paa" if self is Tier.ROOT else "pai"


class LifecycleState(Enum):
    """Forward-only authority lifecycle."""

    CREATED = 0
    CSR_ISSUED = 1
    SIGNED = 2
    ACTIVATED = 3


@dataclass(frozen=True)
class Validity:
    """Certificate validity, either a day count or an explicit end date."""

    type: str
    value: int

    @classmethod
    def days(cls, count: int) -> "Validity":
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise ValidationError("validityInDays", count, "must be a positive integer")
        return cls(type="DAYS", value=count)

    @classmethod
    def end_date(cls, value: str) -> "Validity":
        """Build END_DATE validity from a YYYYMMDDHHMMSS string."""
        if not isinstance(value, str) or len(value) != 14 or not value.isdigit():
            raise ValidationError("validityEndDate", value, "must be exactly 14 digits")
        try:
            datetime.strptime(value, END_DATE_FORMAT)
        except ValueError as e:
            raise ValidationError(
                "validityEndDate", value, "must be a date in YYYYMMDDHHMMSS format"
            ) from e
        return cls(type="END_DATE", value=int(value))

    @classmethod
    def resolve(cls, days: int | None, end_date: str | None, default_days: int) -> "Validity":
        """Pick day-count or end-date validity.

        A non-empty end date wins; passing it together with an explicit day
        count is a conflict.

        Raises:
            ValidationError: If both are given or either is malformed
        """
        if end_date:
            if days is not None:
                raise ValidationError(
                    "validity",
                    {"validityInDays": days, "validityEndDate": end_date},
                    "validityInDays and validityEndDate are mutually exclusive",
                )
            return cls.end_date(end_date)
        return cls.days(default_days if days is None else days)

    def to_api(self) -> dict[str, str | int]:
        return {"Type": self.type, "Value": self.value}


@dataclass(frozen=True)
class RevocationConfig:
    """CRL distribution settings embedded in every authority."""

    bucket_name: str
    expiration_in_days: int = 90

    def to_api(self) -> dict:
        return {
            "CrlConfiguration": {
                "Enabled": True,
                "ExpirationInDays": self.expiration_in_days,
                "S3BucketName": self.bucket_name,
                "S3ObjectAcl": "BUCKET_OWNER_FULL_CONTROL",
                "CrlDistributionPointExtensionConfiguration": {"OmitExtension": True},
            }
        }


@dataclass
class AuthorityRecord:
    """One PAA or PAI tracked through its lifecycle.

    Owned by the lifecycle manager; the signing workflow only advances it
    through the manager's transition methods.
    """

    logical_id: str
    tier: Tier
    subject: "SubjectAttributeSet"
    validity: Validity
    revocation: RevocationConfig
    region: str
    arn: str = ""
    csr: str = ""
    state: LifecycleState = LifecycleState.CREATED
    parent_arn: str | None = None
    parent_region: str | None = None
    certificate_arn: str | None = None
    certificate: str | None = None
    certificate_chain: str | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def key_algorithm(self) -> str:
        return KEY_ALGORITHM

    @property
    def signing_algorithm(self) -> str:
        return SIGNING_ALGORITHM


@dataclass(frozen=True)
class ActivationRecord:
    """Signed certificate (and chain) bound to an authority."""

    authority_arn: str
    certificate: str
    certificate_chain: str | None = None
    status: str = "ACTIVE"


@dataclass(frozen=True)
class AuthorityOutput:
    """Operator-facing outputs for one provisioned authority."""

    logical_id: str
    tier: Tier
    authority_arn: str
    certificate_arn: str | None
    region: str
    vendor_id: str
    common_name: str
    product_id: str | None = None
    certificate_metadata: dict[str, str] = field(default_factory=dict)
    deletion_policy: dict[str, str] = field(default_factory=lambda: dict(DELETION_POLICY))

    @property
    def console_link(self) -> str:
        return CONSOLE_LINK_TEMPLATE.format(region=self.region, arn=self.authority_arn)

    def summary_line(self) -> str:
        """Return 'VID=<vid> [PID=<pid> ]CN=<cn> <arn>'."""
        parts = [f"VID={self.vendor_id}"]
        if self.product_id:
            parts.append(f"PID={self.product_id}")
        parts.append(f"CN={self.common_name}")
        parts.append(self.authority_arn)
        return " ".join(parts)

    def to_dict(self) -> dict:
        return {
            "logicalId": self.logical_id,
            "tier": self.tier.value,
            "authorityArn": self.authority_arn,
            "certificateArn": self.certificate_arn,
            "certificateLink": self.console_link,
            "summary": self.summary_line(),
            "certificate": dict(self.certificate_metadata),
            "deletionPolicy": dict(self.deletion_policy),
        }


@dataclass(frozen=True)
class AuthorityFailure:
    """Authority whose pipeline stopped before activation."""

    logical_id: str
    state: LifecycleState
    error: str


@dataclass
class ProvisioningResult:
    """Result of one provisioning run."""

    mode: str
    region: str
    outputs: list[AuthorityOutput] = field(default_factory=list)
    failures: list[AuthorityFailure] = field(default_factory=list)
    create_shared_resources: bool = True
    audit_plan: dict = field(default_factory=dict)
    access_policies: dict[str, dict] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "region": self.region,
            "authorities": [output.to_dict() for output in self.outputs],
            "failures": [
                {"logicalId": f.logical_id, "state": f.state.name, "error": f.error}
                for f in self.failures
            ],
            "createSharedResources": self.create_shared_resources,
            "auditPlan": self.audit_plan,
            "accessPolicies": self.access_policies,
        }
