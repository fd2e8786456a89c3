"""Tests for subject composition."""

import pytest
from cryptography import x509

from matter_pki.lib.errors import CompositionError, ValidationError
from matter_pki.lib.models import Tier
from matter_pki.lib.subject import (
    COMMON_NAME_OID,
    ORGANIZATION_OID,
    ORGANIZATIONAL_UNIT_OID,
    PRODUCT_ID_OID,
    VENDOR_ID_OID,
    CustomAttribute,
    SubjectAttributeSet,
    SubjectVariant,
    check_custom_subject,
    compose_subject,
    select_variant,
    vendor_id_from_custom_attributes,
)


class TestSelectVariant:
    """Tests for select_variant."""

    @pytest.mark.parametrize(
        ("has_ou", "has_pid", "expected"),
        [
            (False, False, SubjectVariant.BASE),
            (True, False, SubjectVariant.WITH_OU),
            (False, True, SubjectVariant.WITH_PID),
            (True, True, SubjectVariant.WITH_OU_PID),
        ],
    )
    def test_subordinate_matrix(self, has_ou: bool, has_pid: bool, expected: SubjectVariant) -> None:
        """Every OU/PID combination maps to exactly one variant."""
        assert select_variant(Tier.SUBORDINATE, has_ou, has_pid) is expected

    def test_root_with_pid_is_rejected(self) -> None:
        """Root subjects never carry a product id."""
        with pytest.raises(CompositionError):
            select_variant(Tier.ROOT, has_ou=False, has_pid=True)


class TestComposeSubject:
    """Tests for compose_subject."""

    @pytest.mark.parametrize(
        ("ou", "pid", "expected_oids"),
        [
            (None, None, [COMMON_NAME_OID, VENDOR_ID_OID, ORGANIZATION_OID]),
            ("Unit", None, [COMMON_NAME_OID, VENDOR_ID_OID, ORGANIZATION_OID, ORGANIZATIONAL_UNIT_OID]),
            (None, "8000", [COMMON_NAME_OID, VENDOR_ID_OID, ORGANIZATION_OID, PRODUCT_ID_OID]),
            (
                "Unit",
                "8000",
                [COMMON_NAME_OID, VENDOR_ID_OID, ORGANIZATION_OID, ORGANIZATIONAL_UNIT_OID, PRODUCT_ID_OID],
            ),
        ],
    )
    def test_subordinate_variants_in_fixed_order(
        self, ou: str | None, pid: str | None, expected_oids: list[str]
    ) -> None:
        """Should produce 3, 4, 4 or 5 attributes ordered CN, VID, O, [OU], [PID]."""
        subject = compose_subject(Tier.SUBORDINATE, "PAI", "FFF1", "Org", ou, pid)

        api = subject.to_api()["CustomAttributes"]
        assert [attr["ObjectIdentifier"] for attr in api] == expected_oids
        assert subject.common_name == "PAI"
        assert subject.vendor_id == "FFF1"
        assert subject.product_id == pid

    def test_root_base_variant(self) -> None:
        """Root with CN, VID and O has exactly 3 custom attributes."""
        subject = compose_subject(Tier.ROOT, "Test", "1234", "Org")

        assert subject.variant is SubjectVariant.BASE
        assert subject.to_api() == {
            "CustomAttributes": [
                {"ObjectIdentifier": COMMON_NAME_OID, "Value": "Test"},
                {"ObjectIdentifier": VENDOR_ID_OID, "Value": "1234"},
                {"ObjectIdentifier": ORGANIZATION_OID, "Value": "Org"},
            ]
        }

    def test_root_with_ou(self) -> None:
        """Root subjects may carry an OU."""
        subject = compose_subject(Tier.ROOT, "Test", "1234", "Org", organizational_unit="Unit")

        assert subject.variant is SubjectVariant.WITH_OU
        assert subject.get(ORGANIZATIONAL_UNIT_OID) == "Unit"

    def test_empty_strings_mean_absent(self) -> None:
        """Empty OU and PID select the base variant."""
        subject = compose_subject(Tier.SUBORDINATE, "PAI", "FFF1", "Org", "", "")

        assert subject.variant is SubjectVariant.BASE
        assert subject.product_id is None

    def test_root_with_pid_raises(self) -> None:
        """A PID on a root subject is a contract violation."""
        with pytest.raises(CompositionError):
            compose_subject(Tier.ROOT, "Test", "1234", "Org", product_id="8000")

    def test_composition_is_deterministic(self) -> None:
        """Identical inputs give byte-identical attribute sets."""
        first = compose_subject(Tier.SUBORDINATE, "PAI", "FFF1", "Org", "Unit", "8000")
        second = compose_subject(Tier.SUBORDINATE, "PAI", "FFF1", "Org", "Unit", "8000")

        assert first == second
        assert first.to_x509_name().public_bytes() == second.to_x509_name().public_bytes()

    def test_never_mixes_standard_fields(self) -> None:
        """Rendered subjects only ever contain CustomAttributes."""
        subject = compose_subject(Tier.SUBORDINATE, "PAI", "FFF1", "Org", "Unit", "8000")

        assert list(subject.to_api()) == ["CustomAttributes"]


class TestSubjectAttributeSet:
    """Tests for SubjectAttributeSet."""

    def test_rejects_attributes_outside_variant(self) -> None:
        """Attributes must match the declared variant exactly."""
        with pytest.raises(CompositionError):
            SubjectAttributeSet(
                variant=SubjectVariant.BASE,
                attributes=(
                    CustomAttribute(COMMON_NAME_OID, "CN"),
                    CustomAttribute(ORGANIZATION_OID, "Org"),
                    CustomAttribute(VENDOR_ID_OID, "FFF1"),
                ),
            )

    def test_to_x509_name_keeps_order(self) -> None:
        """One RDN per attribute, in composition order."""
        subject = compose_subject(Tier.SUBORDINATE, "PAI", "FFF1", "Org", "Unit", "8000")

        name = subject.to_x509_name()

        assert [attr.oid.dotted_string for attr in name] == list(SubjectVariant.WITH_OU_PID.oids)
        assert name.get_attributes_for_oid(x509.ObjectIdentifier(PRODUCT_ID_OID))[0].value == "8000"


class TestCheckCustomSubject:
    """Tests for check_custom_subject."""

    def test_accepts_custom_only(self) -> None:
        """Pure custom-attribute subjects pass."""
        check_custom_subject(compose_subject(Tier.ROOT, "Test", "1234", "Org").to_api())

    def test_rejects_mixed_subject(self) -> None:
        """Standard fields alongside custom attributes are rejected."""
        subject = compose_subject(Tier.ROOT, "Test", "1234", "Org").to_api()
        subject["CommonName"] = "Test"

        with pytest.raises(CompositionError, match="CommonName"):
            check_custom_subject(subject)


class TestVendorIdFromCustomAttributes:
    """Tests for vendor_id_from_custom_attributes."""

    def test_returns_vid(self) -> None:
        """Should find the VID attribute wherever it sits."""
        attrs = compose_subject(Tier.ROOT, "Test", "FFF1", "Org").to_api()["CustomAttributes"]

        assert vendor_id_from_custom_attributes(attrs) == "FFF1"

    def test_missing_vid_raises(self) -> None:
        """A PAA without a VID attribute isn't VID-scoped."""
        with pytest.raises(ValidationError, match="isn't VID-scoped"):
            vendor_id_from_custom_attributes([{"ObjectIdentifier": COMMON_NAME_OID, "Value": "Test"}])

    def test_malformed_vid_raises(self) -> None:
        """A lowercase VID on the PAA is rejected, not normalized."""
        with pytest.raises(ValidationError, match="paaVendorId"):
            vendor_id_from_custom_attributes([{"ObjectIdentifier": VENDOR_ID_OID, "Value": "fff1"}])
