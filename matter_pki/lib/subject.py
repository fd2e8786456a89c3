"""Subject composition for PAA and PAI certificate authorities.

AWS Private CA accepts a subject made either of standard fields or of custom
attributes, never both. Matter subjects need the vendor and product id OIDs,
so every subject built here is expressed purely as custom attributes.
"""

from dataclasses import dataclass
from enum import Enum

from cryptography import x509

from .errors import CompositionError, ValidationError
from .identifiers import validate_identifier
from .models import Tier

COMMON_NAME_OID = "2.5.4.3"
ORGANIZATION_OID = "2.5.4.10"
ORGANIZATIONAL_UNIT_OID = "2.5.4.11"
VENDOR_ID_OID = "1.3.6.1.4.1.37244.2.1"  # matter-oid-vid
PRODUCT_ID_OID = "1.3.6.1.4.1.37244.2.2"  # matter-oid-pid

# Standard ASN1Subject keys that must never be combined with CustomAttributes
STANDARD_SUBJECT_FIELDS = frozenset(
    {
        "Country",
        "Organization",
        "OrganizationalUnit",
        "DistinguishedNameQualifier",
        "State",
        "CommonName",
        "SerialNumber",
        "Locality",
        "Title",
        "Surname",
        "GivenName",
        "Initials",
        "Pseudonym",
        "GenerationQualifier",
    }
)


class SubjectVariant(Enum):
    """The four allowed subject layouts, keyed by OU/PID presence."""

    BASE = (COMMON_NAME_OID, VENDOR_ID_OID, ORGANIZATION_OID)
    WITH_OU = (COMMON_NAME_OID, VENDOR_ID_OID, ORGANIZATION_OID, ORGANIZATIONAL_UNIT_OID)
    WITH_PID = (COMMON_NAME_OID, VENDOR_ID_OID, ORGANIZATION_OID, PRODUCT_ID_OID)
    WITH_OU_PID = (
        COMMON_NAME_OID,
        VENDOR_ID_OID,
        ORGANIZATION_OID,
        ORGANIZATIONAL_UNIT_OID,
        PRODUCT_ID_OID,
    )

    @property
    def oids(self) -> tuple[str, ...]:
        return self.value


def select_variant(tier: Tier, has_ou: bool, has_pid: bool) -> SubjectVariant:
    """Map OU/PID presence to exactly one subject variant.

    Raises:
        CompositionError: If a product id is requested for a root authority
    """
    if has_pid and tier is Tier.ROOT:
        raise CompositionError("root authority subjects never carry a product id")

    if has_ou and has_pid:
        return SubjectVariant.WITH_OU_PID
    if has_pid:
        return SubjectVariant.WITH_PID
    if has_ou:
        return SubjectVariant.WITH_OU
    return SubjectVariant.BASE


@dataclass(frozen=True)
class CustomAttribute:
    """Single (OID, value) pair of a custom subject."""

    object_identifier: str
    value: str

    def to_api(self) -> dict[str, str]:
        return {"ObjectIdentifier": self.object_identifier, "Value": self.value}


@dataclass(frozen=True)
class SubjectAttributeSet:
    """Ordered custom-attribute subject for one certificate authority."""

    variant: SubjectVariant
    attributes: tuple[CustomAttribute, ...]

    def __post_init__(self) -> None:
        oids = tuple(attr.object_identifier for attr in self.attributes)
        if oids != self.variant.oids:
            raise CompositionError(
                f"attributes {oids} do not match subject variant {self.variant.name}"
            )

    def get(self, oid: str) -> str | None:
        """Return the value for an OID, or None if the variant omits it."""
        for attr in self.attributes:
            if attr.object_identifier == oid:
                return attr.value
        return None

    @property
    def common_name(self) -> str:
        return self.attributes[0].value

    @property
    def vendor_id(self) -> str:
        return self.attributes[1].value

    @property
    def product_id(self) -> str | None:
        return self.get(PRODUCT_ID_OID)

    def to_api(self) -> dict[str, list[dict[str, str]]]:
        """Render as an AWS Private CA ASN1Subject."""
        return {"CustomAttributes": [attr.to_api() for attr in self.attributes]}

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name, one RDN per attribute in order."""
        return x509.Name(
            [
                x509.RelativeDistinguishedName(
                    [x509.NameAttribute(x509.ObjectIdentifier(attr.object_identifier), attr.value)]
                )
                for attr in self.attributes
            ]
        )


def compose_subject(
    tier: Tier,
    common_name: str,
    vendor_id: str,
    organization: str,
    organizational_unit: str | None = None,
    product_id: str | None = None,
) -> SubjectAttributeSet:
    """Build the custom-attribute subject for a PAA or PAI.

    Empty strings for organizational_unit or product_id mean "absent".

    Args:
        tier: ROOT (PAA) or SUBORDINATE (PAI)
        common_name: Subject CN
        vendor_id: Validated 4-hex-digit VID
        organization: Subject O
        organizational_unit: Optional subject OU
        product_id: Optional PID, subordinate authorities only

    Returns:
        SubjectAttributeSet ordered CN, VID, O, [OU], [PID]

    Raises:
        CompositionError: If a PID is given for a root authority
    """
    has_ou = bool(organizational_unit)
    has_pid = bool(product_id)
    variant = select_variant(tier, has_ou, has_pid)

    values = {
        COMMON_NAME_OID: common_name,
        VENDOR_ID_OID: vendor_id,
        ORGANIZATION_OID: organization,
        ORGANIZATIONAL_UNIT_OID: organizational_unit or "",
        PRODUCT_ID_OID: product_id or "",
    }
    return SubjectAttributeSet(
        variant=variant,
        attributes=tuple(CustomAttribute(oid, values[oid]) for oid in variant.oids),
    )


def check_custom_subject(subject: dict) -> None:
    """Reject an ASN1Subject mixing standard fields and custom attributes.

    Raises:
        CompositionError: If both forms are present
    """
    standard = STANDARD_SUBJECT_FIELDS.intersection(subject)
    if standard and subject.get("CustomAttributes"):
        raise CompositionError(
            f"subject mixes standard fields {sorted(standard)} with custom attributes"
        )


def vendor_id_from_custom_attributes(custom_attributes: list[dict[str, str]]) -> str:
    """Extract and validate the VID from a described authority subject.

    Raises:
        ValidationError: If the subject has no VID attribute or it is malformed
    """
    for attr in custom_attributes:
        if attr.get("ObjectIdentifier") == VENDOR_ID_OID:
            return validate_identifier(attr.get("Value"), "paaVendorId")

    raise ValidationError(
        "paaVendorId", None, "PAA isn't VID-scoped (no vendor id custom attribute in its subject)"
    )
