"""Gating and naming of region-shared audit infrastructure.

The audit bucket, backup plan, audit log group and trail exist once per
region. A PAI deployment into the PAA's region reuses the PAA's copies.
"""

from dataclasses import dataclass, field

from .config import MATTER_PKI_TAG
from .errors import ValidationError


def region_from_arn(arn: str) -> str:
    """Return the region field of an ARN (arn:partition:service:region:account:resource).

    Raises:
        ValidationError: If arn is not a regional ARN
    """
    parts = arn.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn" or not parts[3]:
        raise ValidationError("paaArn", arn, "must be a regional ARN")
    return parts[3]


def should_create_shared_resources(is_root: bool, region: str, root_region: str) -> bool:
    """Return True if this deployment must create the regional audit resources.

    Root deployments always create them; subordinate deployments only when
    they target a region other than the root's.
    """
    if is_root:
        return True
    return region != root_region


@dataclass
class AuditPlan:
    """Names and filter patterns of the regional audit resources."""

    bucket_name: str
    backup_plan_name: str
    backup_vault_name: str
    log_group_name: str
    trail_name: str
    filters: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "bucketName": self.bucket_name,
            "backupPlanName": self.backup_plan_name,
            "backupVaultName": self.backup_vault_name,
            "logGroupName": self.log_group_name,
            "trailName": self.trail_name,
            "filters": dict(self.filters),
        }


def plan_audit_infrastructure(
    prefix: str,
    is_root: bool,
    region: str,
    root_region: str,
    role_names: dict[str, str],
) -> AuditPlan | None:
    """Describe the audit resources this deployment owns, or None if gated off.

    Args:
        prefix: Deployment name prefix
        is_root: True for the PAA deployment
        region: Region of this deployment
        root_region: Region of the PAA
        role_names: Role names keyed by capability (see access_policies.role_names)
    """
    if not should_create_shared_resources(is_root, region, root_region):
        return None

    bucket_name = f"{prefix}matter-pki-audit-logs".lower()
    backup_plan_name = f"{prefix}MatterAuditLoggingBackupPlan"

    filters = {
        "AllPCAEventsFilter": '{ ($.eventSource = "acm-pca.amazonaws.com") }',
        "MatterAuditLoggingBucketFilter": (
            '{ ($.eventSource= "s3.amazonaws.com") && '
            f'($.requestParameters.bucketName = "{bucket_name}*") }}'
        ),
        "MatterTaggedFilter": MATTER_PKI_TAG,
    }
    if is_root:
        filters["MatterPAARoleFilter"] = f"iam.amazonaws.com {role_names['manage_paa']}"
        filters["MatterPAIRoleFilter"] = f"iam.amazonaws.com {role_names['issue_pai']}"
    else:
        filters["MatterIssueDACRoleFilter"] = f"iam.amazonaws.com {role_names['issue_dac']}"
    filters["MatterAuditorRoleFilter"] = f"iam.amazonaws.com {role_names['auditor']}"
    filters["MatterAuditLoggingBackupRoleFilter"] = f"iam.amazonaws.com {role_names['backup']}"
    filters["MatterAuditLoggingBackupPlanFilter"] = f"backup.amazonaws.com {backup_plan_name}"

    return AuditPlan(
        bucket_name=bucket_name,
        backup_plan_name=backup_plan_name,
        backup_vault_name=f"{prefix}MatterAuditLoggingBackupVault",
        log_group_name=f"{prefix}MatterAudit",
        trail_name=f"{prefix}MatterAuditTrail",
        filters=filters,
    )
