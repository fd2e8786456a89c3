"""Deployment intent: what a single provisioning run is asked to do.

The mode is decided once here from the flat deployment parameters and is
threaded explicitly through the orchestrator afterwards.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from .config import PKIConfig
from .errors import ValidationError
from .identifiers import parse_product_ids, validate_vendor_id
from .models import Validity
from .shared_resources import region_from_arn


@dataclass(frozen=True)
class UseExistingRoot:
    """Root deployment around a PAA created outside this run."""

    paa_arn: str

    @property
    def root_region(self) -> str:
        return region_from_arn(self.paa_arn)


@dataclass(frozen=True)
class CreateRoot:
    """Root deployment that creates, self-signs and activates a new PAA."""

    vendor_id: str
    common_name: str
    organization: str
    validity: Validity
    crl_bucket_name: str
    organizational_unit: str | None = None


@dataclass(frozen=True)
class SubordinateParameters:
    """Subject inputs for the PAI at one batch index."""

    common_name: str
    organization: str
    organizational_unit: str | None = None
    product_id: str | None = None


@dataclass(frozen=True)
class CreateSubordinates:
    """Subordinate deployment creating N PAIs chained to an existing PAA."""

    paa_arn: str
    subordinates: tuple[SubordinateParameters, ...]
    validity: Validity
    crl_bucket_name: str
    dac_validity_days: int | None = None

    @property
    def root_region(self) -> str:
        return region_from_arn(self.paa_arn)

    @property
    def count(self) -> int:
        return len(self.subordinates)


DeploymentIntent = UseExistingRoot | CreateRoot | CreateSubordinates


def _text(params: Mapping, key: str) -> str:
    value = params.get(key)
    return "" if value is None else str(value)


def _required(params: Mapping, key: str) -> str:
    value = _text(params, key)
    if not value:
        raise ValidationError(key, params.get(key), "is required")
    return value


def _optional_int(params: Mapping, key: str) -> int | None:
    value = params.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(key, value, "must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(key, value, "must be an integer") from e
    if number <= 0:
        raise ValidationError(key, value, "must be a positive integer")
    return number


def _split_list(params: Mapping, key: str, count: int, required: bool) -> list[str] | None:
    """Split a comma-delimited list that must hold exactly one token per index."""
    raw = _text(params, key)
    if not raw:
        if required:
            raise ValidationError(key, params.get(key), "is required")
        return None

    tokens = raw.split(",")
    if len(tokens) != count:
        raise ValidationError(key, raw, f"expected {count} comma-separated values, got {len(tokens)}")
    if required and not all(tokens):
        raise ValidationError(key, raw, "values must not be empty")
    return tokens


def _flag_set(params: Mapping, key: str) -> bool:
    value = params.get(key)
    return value is not None and value is not False


def parse_intent(params: Mapping, config: PKIConfig | None = None) -> DeploymentIntent:
    """Validate deployment parameters and decide the run's mode.

    Absence of generatePaiCnt selects root mode; in root mode generatePaa
    selects creating a new PAA over adopting paaArn. Every check runs here,
    before any authority exists.

    Args:
        params: Flat deployment parameters (paaArn, vendorId, productIds,
            paiCommonNames, validityInDays, ...)
        config: Provisioning defaults

    Returns:
        UseExistingRoot, CreateRoot or CreateSubordinates

    Raises:
        ValidationError: If any parameter is missing, malformed or inconsistent
    """
    config = config or PKIConfig()

    if params.get("generatePaiCnt") is None:
        if not _flag_set(params, "generatePaa"):
            paa_arn = _required(params, "paaArn")
            region_from_arn(paa_arn)
            return UseExistingRoot(paa_arn=paa_arn)

        return CreateRoot(
            vendor_id=validate_vendor_id(params.get("vendorId")),
            common_name=_required(params, "paaCommonName"),
            organization=_required(params, "paaOrganization"),
            organizational_unit=_text(params, "paaOU") or None,
            validity=Validity.resolve(
                _optional_int(params, "validityInDays"),
                _text(params, "validityEndDate"),
                config.root_validity_days,
            ),
            crl_bucket_name=_required(params, "crlBucketName"),
        )

    count = _optional_int(params, "generatePaiCnt")
    if count is None:
        raise ValidationError("generatePaiCnt", params.get("generatePaiCnt"), "must be a positive integer")

    paa_arn = _required(params, "paaArn")
    region_from_arn(paa_arn)

    common_names = _split_list(params, "paiCommonNames", count, required=True)
    organizations = _split_list(params, "paiOrganizations", count, required=True)
    organizational_units = _split_list(params, "paiOrganizationalUnits", count, required=False)

    product_ids = parse_product_ids(_text(params, "productIds"))
    if product_ids and len(product_ids) != count:
        raise ValidationError(
            "productIds",
            params.get("productIds"),
            f"expected {count} product ids, got {len(product_ids)}",
        )

    subordinates = tuple(
        SubordinateParameters(
            common_name=common_names[index],
            organization=organizations[index],
            organizational_unit=organizational_units[index] if organizational_units else None,
            product_id=product_ids[index] if product_ids else None,
        )
        for index in range(count)
    )

    return CreateSubordinates(
        paa_arn=paa_arn,
        subordinates=subordinates,
        validity=Validity.resolve(
            _optional_int(params, "validityInDays"),
            _text(params, "validityEndDate"),
            config.subordinate_validity_days,
        ),
        crl_bucket_name=_required(params, "crlBucketName"),
        dac_validity_days=_optional_int(params, "dacValidityInDays"),
    )
