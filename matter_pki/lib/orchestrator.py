"""Top-level driver provisioning a PAA or a batch of PAIs for one deployment."""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from botocore.exceptions import BotoCoreError, ClientError

from .access_policies import build_access_policies, role_names
from .cert_utils import deserialize_certificate, extract_certificate_metadata
from .config import PKIConfig
from .errors import DeletionSafetyViolation, SigningWorkflowError
from .intent import CreateRoot, CreateSubordinates, DeploymentIntent, UseExistingRoot
from .lifecycle import AuthorityLifecycleManager
from .models import (
    AuthorityFailure,
    AuthorityOutput,
    AuthorityRecord,
    LifecycleState,
    ProvisioningResult,
    RevocationConfig,
    Tier,
)
from .pca_client import PCAClient
from .s3_client import S3Client
from .shared_resources import plan_audit_infrastructure, should_create_shared_resources
from .signing import SigningWorkflow
from .ssm_client import SSMClient
from .subject import SubjectAttributeSet, compose_subject, vendor_id_from_custom_attributes

logger = logging.getLogger(__name__)

ROOT_LOGICAL_ID = "PAA"


def subordinate_logical_id(index: int) -> str:
    return f"PAI{index}"


class HierarchyOrchestrator:
    """Sequences validation, composition, lifecycle and signing per authority.

    Authorities in a subordinate batch are provisioned by independent,
    strictly ordered pipelines that may run in parallel. A failed pipeline
    never undoes its siblings; it is reported in the result instead.
    """

    def __init__(
        self,
        config: PKIConfig,
        pca_client_for_region: Callable[[str], PCAClient] | None = None,
        ssm_client: SSMClient | None = None,
        s3_client: S3Client | None = None,
        force_refresh: bool = True,
    ) -> None:
        """Initialize orchestrator.

        Args:
            config: Provisioning defaults
            pca_client_for_region: Factory for per-region PCA clients; one
                cached PCAClient per region when omitted
            ssm_client: Parameter store for hand-off state
            s3_client: Client used to verify the CRL bucket
            force_refresh: Re-run issuance calls on every deployment
        """
        self.config = config
        self._clients: dict[str, PCAClient] = {}
        self._clients_lock = threading.Lock()
        self.pca_client_for_region = pca_client_for_region or self._cached_pca_client
        self.ssm_client = ssm_client or SSMClient(region=config.region, prefix=config.ssm_prefix)
        self.s3_client = s3_client or S3Client(region=config.region)
        self.force_refresh = force_refresh

    def _cached_pca_client(self, region: str) -> PCAClient:
        with self._clients_lock:
            if region not in self._clients:
                self._clients[region] = PCAClient(region=region, max_attempts=self.config.max_attempts)
            return self._clients[region]

    def _workflow(self, subordinate: bool) -> tuple[AuthorityLifecycleManager, SigningWorkflow]:
        lifecycle = AuthorityLifecycleManager(
            pca_client=self.pca_client_for_region(self.config.region),
            ssm_client=self.ssm_client,
            stack_name=self.config.stack_name(subordinate),
        )
        signing = SigningWorkflow(
            lifecycle=lifecycle,
            pca_client_for_region=self.pca_client_for_region,
            ssm_client=self.ssm_client,
            force_refresh=self.force_refresh,
        )
        return lifecycle, signing

    def provision(self, intent: DeploymentIntent) -> ProvisioningResult:
        """Run the deployment described by intent.

        Raises:
            ValidationError: If the CRL bucket is missing or the PAA is not VID-scoped
            SigningWorkflowError: If the PAA cannot be read in subordinate mode
        """
        if isinstance(intent, UseExistingRoot):
            return self._use_existing_root(intent)
        if isinstance(intent, CreateRoot):
            return self._create_root(intent)
        if isinstance(intent, CreateSubordinates):
            return self._create_subordinates(intent)
        raise TypeError(f"unsupported deployment intent {type(intent).__name__}")

    def _use_existing_root(self, intent: UseExistingRoot) -> ProvisioningResult:
        logger.info("Using existing PAA %s", intent.paa_arn)
        result = ProvisioningResult(mode="use-existing-root", region=self.config.region)
        self._apply_regional_plan(result, intent.paa_arn, is_root=True, root_region=self.config.region)
        return result

    def _create_root(self, intent: CreateRoot) -> ProvisioningResult:
        self.s3_client.get_bucket_region(intent.crl_bucket_name)
        subject = compose_subject(
            Tier.ROOT,
            common_name=intent.common_name,
            vendor_id=intent.vendor_id,
            organization=intent.organization,
            organizational_unit=intent.organizational_unit,
        )
        revocation = RevocationConfig(intent.crl_bucket_name, self.config.crl_expiration_days)
        lifecycle, signing = self._workflow(subordinate=False)

        def create() -> AuthorityRecord:
            return lifecycle.ensure_authority(
                ROOT_LOGICAL_ID, Tier.ROOT, subject, intent.validity, revocation
            )

        result = ProvisioningResult(mode="create-root", region=self.config.region)
        record, failure = self._run_pipeline(ROOT_LOGICAL_ID, create, signing.sign_root)
        if failure:
            result.failures.append(failure)
        else:
            result.outputs.append(self._output(record))

        if record and record.arn:
            self._apply_regional_plan(result, record.arn, is_root=True, root_region=self.config.region)
        return result

    def _create_subordinates(self, intent: CreateSubordinates) -> ProvisioningResult:
        root_region = intent.root_region
        parent_client = self.pca_client_for_region(root_region)

        custom_attributes = self._read_parent(
            "lookup-vendor-id", parent_client.get_subject_custom_attributes, intent.paa_arn
        )
        vendor_id = vendor_id_from_custom_attributes(custom_attributes)
        parent_certificate = self._read_parent(
            "fetch-parent-certificate", parent_client.get_authority_certificate, intent.paa_arn
        )
        self.s3_client.get_bucket_region(intent.crl_bucket_name)

        subjects = [
            compose_subject(
                Tier.SUBORDINATE,
                common_name=params.common_name,
                vendor_id=vendor_id,
                organization=params.organization,
                organizational_unit=params.organizational_unit,
                product_id=params.product_id,
            )
            for params in intent.subordinates
        ]
        revocation = RevocationConfig(intent.crl_bucket_name, self.config.crl_expiration_days)
        lifecycle, signing = self._workflow(subordinate=True)

        def pipeline(index: int, subject: SubjectAttributeSet):
            logical_id = subordinate_logical_id(index)

            def create() -> AuthorityRecord:
                return lifecycle.ensure_authority(
                    logical_id,
                    Tier.SUBORDINATE,
                    subject,
                    intent.validity,
                    revocation,
                    parent_arn=intent.paa_arn,
                    parent_region=root_region,
                )

            def sign(record: AuthorityRecord) -> None:
                signing.sign_subordinate(record, parent_certificate)

            return self._run_pipeline(logical_id, create, sign)

        logger.info(
            "Provisioning %d PAIs under %s with %d workers",
            intent.count,
            intent.paa_arn,
            self.config.max_workers,
        )
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            results = list(executor.map(pipeline, range(intent.count), subjects))

        result = ProvisioningResult(mode="create-subordinates", region=self.config.region)
        for record, failure in results:
            if failure:
                result.failures.append(failure)
            else:
                result.outputs.append(self._output(record))

        self._apply_regional_plan(result, intent.paa_arn, is_root=False, root_region=root_region)
        if intent.dac_validity_days is not None:
            result.access_policies["DACIssuingWorker"]["dacValidityInDays"] = intent.dac_validity_days
        return result

    def _run_pipeline(
        self,
        logical_id: str,
        create: Callable[[], AuthorityRecord],
        sign: Callable[[AuthorityRecord], object],
    ) -> tuple[AuthorityRecord | None, AuthorityFailure | None]:
        """Create and sign one authority, capturing the state it stopped at."""
        record = None
        try:
            record = create()
            sign(record)
        except (SigningWorkflowError, DeletionSafetyViolation) as e:
            state = record.state if record else LifecycleState.CREATED
            logger.error(
                "Authority %s stopped at %s: %s",
                logical_id,
                state.name,
                e,
                extra={"authority": logical_id},
            )
            return record, AuthorityFailure(logical_id=logical_id, state=state, error=str(e))
        return record, None

    def _read_parent(self, step: str, func, *args):
        try:
            return func(*args)
        except (ClientError, BotoCoreError) as e:
            logger.error("Step %s failed for PAA: %s", step, e, extra={"authority": ROOT_LOGICAL_ID, "step": step})
            raise SigningWorkflowError(ROOT_LOGICAL_ID, step, str(e)) from e

    def _apply_regional_plan(
        self, result: ProvisioningResult, paa_arn: str, is_root: bool, root_region: str
    ) -> None:
        result.create_shared_resources = should_create_shared_resources(
            is_root, self.config.region, root_region
        )
        plan = plan_audit_infrastructure(
            self.config.prefix,
            is_root,
            self.config.region,
            root_region,
            role_names(self.config.prefix),
        )
        result.audit_plan = plan.to_dict() if plan else {}
        result.access_policies = build_access_policies(
            self.config.prefix, paa_arn, is_root, self.config.roles_path
        )

    @staticmethod
    def _output(record: AuthorityRecord) -> AuthorityOutput:
        return AuthorityOutput(
            logical_id=record.logical_id,
            tier=record.tier,
            authority_arn=record.arn,
            certificate_arn=record.certificate_arn,
            region=record.region,
            vendor_id=record.subject.vendor_id,
            common_name=record.subject.common_name,
            product_id=record.subject.product_id,
            certificate_metadata=(
                extract_certificate_metadata(deserialize_certificate(record.certificate))
                if record.certificate
                else {}
            ),
            deletion_policy=AuthorityLifecycleManager.deletion_policy(),
        )
