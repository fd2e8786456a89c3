"""Authority lifecycle: creation, CSR extraction, state transitions and deletion safety."""

import hashlib
import logging
from typing import NoReturn

from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    DELETION_POLICY,
    KEY_STORAGE_SECURITY_STANDARD,
    MATTER_CA_TYPE_TAG,
    MATTER_PKI_TAG,
)
from .errors import DeletionSafetyViolation, SigningWorkflowError
from .models import ActivationRecord, AuthorityRecord, LifecycleState, RevocationConfig, Tier, Validity
from .pca_client import PCAClient
from .ssm_client import SSMClient
from .subject import SubjectAttributeSet, check_custom_subject

logger = logging.getLogger(__name__)

_RESUMABLE_STATUSES = {"CREATING", "PENDING_CERTIFICATE", "ACTIVE"}


def authority_tags(tier: Tier) -> dict[str, str]:
    """Tags attached at creation; authorization scopes key off matterCAType."""
    return {MATTER_CA_TYPE_TAG: tier.ca_type_tag, MATTER_PKI_TAG: ""}


class AuthorityLifecycleManager:
    """Creates authorities and owns their lifecycle state.

    States only move forward: CREATED -> CSR_ISSUED -> SIGNED -> ACTIVATED.
    Authorities are never deleted or replaced by this manager.
    """

    def __init__(
        self,
        pca_client: PCAClient,
        ssm_client: SSMClient,
        stack_name: str,
    ) -> None:
        self.pca_client = pca_client
        self.ssm_client = ssm_client
        self.stack_name = stack_name

    def authority_arn_path(self, logical_id: str) -> str:
        return f"{self.ssm_client.prefix}/{self.stack_name}/{logical_id}/authority-arn"

    def creation_token(self, logical_id: str) -> str:
        """Stable token so a retried create call never yields a second authority."""
        digest = hashlib.sha256(f"{self.stack_name}/{logical_id}".encode()).hexdigest()
        return digest[:32]

    @staticmethod
    def deletion_policy() -> dict[str, str]:
        return dict(DELETION_POLICY)

    def ensure_authority(
        self,
        logical_id: str,
        tier: Tier,
        subject: SubjectAttributeSet,
        validity: Validity,
        revocation: RevocationConfig,
        parent_arn: str | None = None,
        parent_region: str | None = None,
    ) -> AuthorityRecord:
        """Return the authority for logical_id, creating it on first deployment.

        An authority recorded by a previous run is adopted and its state
        resumed; a changed subject would require replacement and is refused.

        Raises:
            DeletionSafetyViolation: If the recorded authority's subject differs
            SigningWorkflowError: If creation, CSR retrieval or resume fails
        """
        record = AuthorityRecord(
            logical_id=logical_id,
            tier=tier,
            subject=subject,
            validity=validity,
            revocation=revocation,
            region=self.pca_client.region,
            parent_arn=parent_arn,
            parent_region=parent_region,
            tags=authority_tags(tier),
        )

        existing_arn = self._call(
            record, "lookup", self.ssm_client.get_value, self.authority_arn_path(logical_id)
        )
        if existing_arn:
            record.arn = existing_arn
            return self.resume(record)

        return self.create_authority(record)

    def create_authority(self, record: AuthorityRecord) -> AuthorityRecord:
        """Create the authority and extract its CSR.

        Creation and CSR extraction form one step: the CSR is a function of
        the key generated at creation.

        Returns:
            The record in CSR_ISSUED state
        """
        if record.state is not LifecycleState.CREATED:
            raise SigningWorkflowError(record.logical_id, "create", f"record is {record.state.name}")

        subject = record.subject.to_api()
        check_custom_subject(subject)

        record.arn = self._call(
            record,
            "create",
            self.pca_client.create_certificate_authority,
            authority_type=record.tier.value,
            key_algorithm=record.key_algorithm,
            signing_algorithm=record.signing_algorithm,
            subject=subject,
            revocation_configuration=record.revocation.to_api(),
            tags=record.tags,
            idempotency_token=self.creation_token(record.logical_id),
            key_storage_security_standard=KEY_STORAGE_SECURITY_STANDARD,
        )
        self._call(
            record,
            "record-authority",
            self.ssm_client.put_value,
            self.authority_arn_path(record.logical_id),
            record.arn,
        )
        logger.info(
            "Created %s authority %s",
            record.tier.value,
            record.arn,
            extra={"authority": record.logical_id, "step": "create"},
        )

        record.csr = self._call(record, "get-csr", self.pca_client.get_csr, record.arn)
        self._advance(record, LifecycleState.CSR_ISSUED)
        return record

    def resume(self, record: AuthorityRecord) -> AuthorityRecord:
        """Rebuild the lifecycle state of an authority created by an earlier run.

        ACTIVE maps to ACTIVATED; PENDING_CERTIFICATE maps to SIGNED when a
        certificate ARN was recorded, CSR_ISSUED otherwise.
        """
        authority = self._call(record, "resume", self.pca_client.describe_authority, record.arn)
        status = authority["Status"]
        if status not in _RESUMABLE_STATUSES:
            raise SigningWorkflowError(
                record.logical_id, "resume", f"authority {record.arn} is {status}"
            )

        described = authority["CertificateAuthorityConfiguration"]["Subject"]
        if described.get("CustomAttributes") != record.subject.to_api()["CustomAttributes"]:
            self.replace_authority(record)

        record.csr = self._call(record, "get-csr", self.pca_client.get_csr, record.arn)
        self._advance(record, LifecycleState.CSR_ISSUED)

        certificate_arn = self._call(
            record,
            "resume",
            self.ssm_client.get_certificate_arn,
            self.stack_name,
            record.logical_id,
        )
        if certificate_arn:
            self.mark_signed(record, certificate_arn)

        if status == "ACTIVE":
            if record.state is not LifecycleState.SIGNED:
                raise SigningWorkflowError(
                    record.logical_id, "resume", "authority is ACTIVE but no certificate ARN is recorded"
                )
            certificate = self._call(
                record, "resume", self.pca_client.get_authority_certificate, record.arn
            )
            self.mark_activated(record, ActivationRecord(authority_arn=record.arn, certificate=certificate))

        logger.info(
            "Resumed authority %s at %s",
            record.arn,
            record.state.name,
            extra={"authority": record.logical_id, "step": "resume"},
        )
        return record

    def mark_signed(self, record: AuthorityRecord, certificate_arn: str) -> None:
        self._advance(record, LifecycleState.SIGNED)
        record.certificate_arn = certificate_arn

    def mark_activated(self, record: AuthorityRecord, activation: ActivationRecord) -> None:
        if activation.status != "ACTIVE":
            raise SigningWorkflowError(record.logical_id, "activate", f"status {activation.status}")
        self._advance(record, LifecycleState.ACTIVATED)
        record.certificate = activation.certificate
        record.certificate_chain = activation.certificate_chain

    def delete_authority(self, record: AuthorityRecord) -> NoReturn:
        """Refuse deletion; authority keys cannot be regenerated."""
        raise DeletionSafetyViolation(record.arn or record.logical_id, "delete")

    def replace_authority(self, record: AuthorityRecord) -> NoReturn:
        """Refuse in-place replacement; it would discard the existing key."""
        raise DeletionSafetyViolation(record.arn or record.logical_id, "replace")

    def _advance(self, record: AuthorityRecord, target: LifecycleState) -> None:
        if target.value != record.state.value + 1:
            raise SigningWorkflowError(
                record.logical_id,
                target.name.lower(),
                f"illegal transition {record.state.name} -> {target.name}",
            )
        record.state = target

    def _call(self, record: AuthorityRecord, step: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Step %s failed for %s: %s",
                step,
                record.logical_id,
                e,
                extra={"authority": record.logical_id, "step": step},
            )
            raise SigningWorkflowError(record.logical_id, step, str(e)) from e
