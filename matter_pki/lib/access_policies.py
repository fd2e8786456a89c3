"""Capability scopes requested from the identity service.

Scopes key off the matterCAType tag attached at authority creation wherever a
tag suffices, and name the PAA ARN only where the PAA itself is the resource.
"""

from .config import DAC_TEMPLATE_ARN_PATTERN, MATTER_CA_TYPE_TAG, SUBORDINATE_CA_TEMPLATE_ARN_PATTERN

ISSUE_DAC_ROLE_NAME = "MatterIssueDACRole"
ISSUE_PAI_ROLE_NAME = "MatterIssuePAIRole"
MANAGE_PAA_ROLE_NAME = "MatterManagePAARole"
AUDITOR_ROLE_NAME = "MatterAuditorRole"
AUDIT_LOGGING_BACKUP_ROLE_NAME = "S3BackupRole"

BACKUP_MANAGED_POLICIES = [
    "service-role/AWSBackupServiceRolePolicyForBackup",
    "service-role/AWSBackupServiceRolePolicyForRestores",
    "AWSBackupServiceRolePolicyForS3Backup",
    "AWSBackupServiceRolePolicyForS3Restore",
]

_AUDIT_ACTIONS = [
    "acm-pca:CreateCertificateAuthorityAuditReport",
    "acm-pca:DescribeCertificateAuthority",
    "acm-pca:DescribeCertificateAuthorityAuditReport",
    "acm-pca:GetCertificateAuthorityCsr",
    "acm-pca:GetCertificateAuthorityCertificate",
    "acm-pca:GetCertificate",
    "acm-pca:GetPolicy",
    "acm-pca:ListPermissions",
    "acm-pca:ListTags",
]


def _tag_condition(ca_type: str) -> dict:
    return {"StringEquals": {f"aws:ResourceTag/{MATTER_CA_TYPE_TAG}": ca_type}}


def _statement(effect: str, actions: list[str], resources: list[str], condition: dict | None = None) -> dict:
    statement = {"Effect": effect, "Action": actions, "Resource": resources}
    if condition:
        statement["Condition"] = condition
    return statement


def _document(*statements: dict) -> dict:
    return {"Version": "2012-10-17", "Statement": list(statements)}


def role_names(prefix: str = "") -> dict[str, str]:
    """Role names keyed by capability."""
    return {
        "issue_dac": prefix + ISSUE_DAC_ROLE_NAME,
        "issue_pai": prefix + ISSUE_PAI_ROLE_NAME,
        "manage_paa": prefix + MANAGE_PAA_ROLE_NAME,
        "auditor": prefix + AUDITOR_ROLE_NAME,
        "backup": prefix + AUDIT_LOGGING_BACKUP_ROLE_NAME,
    }


def issue_dac_policy() -> dict:
    """Issue only end-entity DACs, and only from authorities tagged as PAIs."""
    pai = _tag_condition("pai")
    return _document(
        _statement(
            "Allow",
            ["acm-pca:IssueCertificate"],
            ["*"],
            {"StringLike": {"acm-pca:TemplateArn": DAC_TEMPLATE_ARN_PATTERN}, **pai},
        ),
        _statement(
            "Deny",
            ["acm-pca:IssueCertificate"],
            ["*"],
            {"StringNotLike": {"acm-pca:TemplateArn": DAC_TEMPLATE_ARN_PATTERN}, **pai},
        ),
        _statement(
            "Allow",
            [
                "acm-pca:RevokeCertificate",
                "acm-pca:GetCertificate",
                "acm-pca:GetCertificateAuthorityCertificate",
                "acm-pca:DescribeCertificateAuthority",
            ],
            ["*"],
            pai,
        ),
        _statement("Allow", ["acm-pca:ListCertificateAuthorities"], ["*"]),
    )


def issue_pai_policy(paa_arn: str) -> dict:
    """Issue only subordinate CA certificates from the PAA and manage PAI-tagged authorities."""
    template = {"acm-pca:TemplateArn": SUBORDINATE_CA_TEMPLATE_ARN_PATTERN}
    return _document(
        _statement("Allow", ["acm-pca:IssueCertificate"], [paa_arn], {"StringLike": template}),
        _statement("Deny", ["acm-pca:IssueCertificate"], [paa_arn], {"StringNotLike": template}),
        _statement(
            "Allow",
            [
                "acm-pca:GetCertificateAuthorityCertificate",
                "acm-pca:ImportCertificateAuthorityCertificate",
                "acm-pca:DeleteCertificateAuthority",
                "acm-pca:UpdateCertificateAuthority",
                "acm-pca:DescribeCertificateAuthority",
                "acm-pca:GetCertificateAuthorityCsr",
            ],
            ["*"],
            _tag_condition("pai"),
        ),
        _statement(
            "Allow",
            [
                "acm-pca:RevokeCertificate",
                "acm-pca:GetCertificate",
                "acm-pca:GetCertificateAuthorityCertificate",
                "acm-pca:DescribeCertificateAuthority",
            ],
            [paa_arn],
        ),
        _statement(
            "Allow",
            [
                "acm-pca:ListCertificateAuthorities",
                "acm-pca:CreateCertificateAuthority",
                "acm-pca:TagCertificateAuthority",
            ],
            ["*"],
        ),
    )


def manage_paa_policy(paa_arn: str) -> dict:
    return _document(
        _statement(
            "Allow",
            [
                "acm-pca:UpdateCertificateAuthority",
                "acm-pca:DescribeCertificateAuthority",
                "acm-pca:GetCertificate",
                "acm-pca:GetCertificateAuthorityCertificate",
            ],
            [paa_arn],
        ),
        _statement("Allow", ["acm-pca:ListCertificateAuthorities"], ["*"]),
    )


def auditor_policy(paa_arn: str) -> dict:
    """Read-only audit access to the PAA and every PAI-tagged authority."""
    return _document(
        _statement("Allow", list(_AUDIT_ACTIONS), [paa_arn]),
        _statement("Allow", list(_AUDIT_ACTIONS), ["*"], _tag_condition("pai")),
    )


def build_access_policies(prefix: str, paa_arn: str, is_root: bool, roles_path: str = "/MatterPKI/") -> dict[str, dict]:
    """Return the scopes this deployment requests, keyed by role name.

    The root deployment defines every role; subordinate deployments reuse
    those roles and only request the DAC issuance scope for the issuance
    worker.
    """
    names = role_names(prefix)
    if not is_root:
        return {
            "DACIssuingWorker": {
                "path": roles_path,
                "policy": issue_dac_policy(),
                "reusesRoles": [names["manage_paa"], names["issue_pai"], names["auditor"],
                                names["backup"], names["issue_dac"]],
            }
        }

    return {
        names["manage_paa"]: {"path": roles_path, "policy": manage_paa_policy(paa_arn)},
        names["issue_pai"]: {"path": roles_path, "policy": issue_pai_policy(paa_arn)},
        names["auditor"]: {"path": roles_path, "policy": auditor_policy(paa_arn)},
        names["backup"]: {
            "path": roles_path,
            "assumedBy": "backup.amazonaws.com",
            "managedPolicies": list(BACKUP_MANAGED_POLICIES),
        },
        names["issue_dac"]: {"path": roles_path, "policy": issue_dac_policy()},
    }
