"""Signing workflow turning CSR_ISSUED authorities into activated, chained authorities.

Root:        own CSR -> self-issue -> fetch -> activate
Subordinate: CSR -> parameter store -> parent issue -> record ARN -> fetch
             certificate and parent certificate -> verify -> activate with chain
"""

import hashlib
import logging
import re
import time
from collections.abc import Callable

from botocore.exceptions import BotoCoreError, ClientError

from .cert_utils import (
    KEY_USAGE_OID,
    ca_key_usage,
    deserialize_certificate,
    encode_key_usage,
    has_ca_only_key_usage,
    is_directly_issued_by,
    subject_attributes,
)
from .config import ROOT_CA_TEMPLATE_ARN, SUBORDINATE_CA_TEMPLATE_ARN
from .errors import SigningWorkflowError
from .lifecycle import AuthorityLifecycleManager
from .models import ActivationRecord, AuthorityRecord, LifecycleState, Tier
from .pca_client import PCAClient
from .ssm_client import SSMClient

logger = logging.getLogger(__name__)

# keyCertSign + cRLSign only; the subordinate template would also set digitalSignature
SUBORDINATE_KEY_USAGE = encode_key_usage(ca_key_usage())

_ESCAPE_SEQUENCE = re.compile(r"\\(\\|n|r)")
_UNESCAPED = {"\\": "\\", "n": "\n", "r": "\r"}


def escape_csr(csr: str) -> str:
    """Escape backslashes and line breaks so the CSR fits in a JSON string verbatim."""
    return csr.replace("\\", "\\\\").replace("\r", "\\r").replace("\n", "\\n")


def unescape_csr(escaped: str) -> str:
    """Exact inverse of escape_csr."""
    return _ESCAPE_SEQUENCE.sub(lambda m: _UNESCAPED[m.group(1)], escaped)


def run_token(authority_arn: str, force_refresh: bool = True) -> str:
    """Idempotency token for issuance calls.

    With force_refresh the token derives from the execution time, so every
    run issues afresh instead of Private CA replaying an earlier request.
    Without it the token is stable per authority.
    """
    seed = f"{authority_arn}/{time.time_ns()}" if force_refresh else authority_arn
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def subordinate_api_passthrough() -> dict:
    """ApiPassthrough forcing a critical CA-only KeyUsage on PAI certificates."""
    return {
        "Extensions": {
            "CustomExtensions": [
                {
                    "ObjectIdentifier": KEY_USAGE_OID,
                    "Value": SUBORDINATE_KEY_USAGE,
                    "Critical": True,
                }
            ]
        }
    }


class SigningWorkflow:
    """Drives signing and activation for one deployment."""

    def __init__(
        self,
        lifecycle: AuthorityLifecycleManager,
        pca_client_for_region: Callable[[str], PCAClient],
        ssm_client: SSMClient,
        force_refresh: bool = True,
    ) -> None:
        """Initialize signing workflow.

        Args:
            lifecycle: Manager owning authority state transitions
            pca_client_for_region: Returns a PCA client for a region; parents
                may live in another region than their subordinates
            ssm_client: Parameter store used to hand CSRs to the signer
            force_refresh: Always treat issuance as changed on re-runs
        """
        self.lifecycle = lifecycle
        self.pca_client_for_region = pca_client_for_region
        self.ssm_client = ssm_client
        self.force_refresh = force_refresh

    @property
    def stack_name(self) -> str:
        return self.lifecycle.stack_name

    def sign_root(self, record: AuthorityRecord) -> ActivationRecord | None:
        """Self-sign and activate a root authority.

        Returns:
            ActivationRecord, or None if the authority was already activated
        """
        if record.tier is not Tier.ROOT:
            raise SigningWorkflowError(record.logical_id, "sign", "not a root authority")
        if record.state is LifecycleState.ACTIVATED:
            return None

        client = self.pca_client_for_region(record.region)

        if record.state is LifecycleState.CSR_ISSUED:
            certificate_arn = self._step(
                record,
                "sign",
                client.issue_certificate,
                authority_arn=record.arn,
                csr=record.csr,
                signing_algorithm=record.signing_algorithm,
                template_arn=ROOT_CA_TEMPLATE_ARN,
                validity=record.validity.to_api(),
                idempotency_token=run_token(record.arn, self.force_refresh),
            )
            self._record_signed(record, certificate_arn)

        certificate = self._step(
            record, "fetch-certificate", client.get_certificate, record.arn, record.certificate_arn
        )
        cert = self._step(record, "verify", deserialize_certificate, certificate)
        if not is_directly_issued_by(cert, cert):
            raise SigningWorkflowError(record.logical_id, "verify", "root certificate is not self-signed")
        self._verify_subject(record, cert)

        return self._activate(record, client, certificate, None)

    def sign_subordinate(
        self, record: AuthorityRecord, parent_certificate: str | None = None
    ) -> ActivationRecord | None:
        """Have the parent sign a subordinate's CSR and activate it with the chain.

        Args:
            record: Subordinate authority in CSR_ISSUED or SIGNED state
            parent_certificate: Parent CA certificate PEM; fetched when omitted

        Returns:
            ActivationRecord, or None if the authority was already activated
        """
        if record.tier is not Tier.SUBORDINATE or not record.parent_arn:
            raise SigningWorkflowError(record.logical_id, "sign", "not a chained subordinate authority")
        if record.state is LifecycleState.ACTIVATED:
            return None

        parent_client = self.pca_client_for_region(record.parent_region or record.region)

        if record.state is LifecycleState.CSR_ISSUED:
            self._step(
                record,
                "transmit-csr",
                self.ssm_client.put_signing_request,
                self.stack_name,
                record.logical_id,
                escape_csr(record.csr),
            )
            csr = unescape_csr(
                self._step(
                    record,
                    "transmit-csr",
                    self.ssm_client.get_signing_request,
                    self.stack_name,
                    record.logical_id,
                )
            )
            certificate_arn = self._step(
                record,
                "sign",
                parent_client.issue_certificate,
                authority_arn=record.parent_arn,
                csr=csr,
                signing_algorithm=record.signing_algorithm,
                template_arn=SUBORDINATE_CA_TEMPLATE_ARN,
                validity=record.validity.to_api(),
                idempotency_token=run_token(record.arn, self.force_refresh),
                api_passthrough=subordinate_api_passthrough(),
            )
            self._record_signed(record, certificate_arn)

        certificate = self._step(
            record,
            "fetch-certificate",
            parent_client.get_certificate,
            record.parent_arn,
            record.certificate_arn,
        )
        if parent_certificate is None:
            parent_certificate = self._step(
                record,
                "fetch-parent-certificate",
                parent_client.get_authority_certificate,
                record.parent_arn,
            )

        cert = self._step(record, "verify", deserialize_certificate, certificate)
        parent = self._step(record, "verify", deserialize_certificate, parent_certificate)
        if not is_directly_issued_by(cert, parent):
            raise SigningWorkflowError(
                record.logical_id, "verify", f"certificate is not issued by {record.parent_arn}"
            )
        if not has_ca_only_key_usage(cert):
            raise SigningWorkflowError(
                record.logical_id, "verify", "key usage must be keyCertSign and cRLSign only"
            )
        self._verify_subject(record, cert)

        own_client = self.pca_client_for_region(record.region)
        return self._activate(record, own_client, certificate, parent_certificate)

    def _record_signed(self, record: AuthorityRecord, certificate_arn: str) -> None:
        # SIGNED only once the ARN is stored; resume rebuilds SIGNED from it
        self._step(
            record,
            "record-certificate",
            self.ssm_client.record_certificate_arn,
            self.stack_name,
            record.logical_id,
            certificate_arn,
        )
        self.lifecycle.mark_signed(record, certificate_arn)
        logger.info(
            "Issued certificate %s",
            certificate_arn,
            extra={"authority": record.logical_id, "step": "sign"},
        )

    def _activate(
        self,
        record: AuthorityRecord,
        client: PCAClient,
        certificate: str,
        chain: str | None,
    ) -> ActivationRecord:
        activation = ActivationRecord(
            authority_arn=record.arn, certificate=certificate, certificate_chain=chain
        )
        self._step(
            record,
            "activate",
            client.import_authority_certificate,
            record.arn,
            activation.certificate,
            activation.certificate_chain,
        )
        self.lifecycle.mark_activated(record, activation)
        logger.info(
            "Activated authority %s",
            record.arn,
            extra={"authority": record.logical_id, "step": "activate"},
        )
        return activation

    def _verify_subject(self, record: AuthorityRecord, cert) -> None:
        expected = [(attr.object_identifier, attr.value) for attr in record.subject.attributes]
        actual = subject_attributes(cert.subject)
        if actual != expected:
            raise SigningWorkflowError(
                record.logical_id, "verify", f"certificate subject {actual} != {expected}"
            )

    def _step(self, record: AuthorityRecord, step: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ClientError, BotoCoreError, ValueError) as e:
            logger.error(
                "Step %s failed for %s at %s: %s",
                step,
                record.logical_id,
                record.state.name,
                e,
                extra={"authority": record.logical_id, "step": step},
            )
            raise SigningWorkflowError(record.logical_id, step, str(e)) from e
