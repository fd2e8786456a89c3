#!/usr/bin/env python3
"""Provision the Matter PKI hierarchy - a PAA, or a batch of PAIs chained to one."""

import argparse
import json
import sys
from pathlib import Path

from matter_pki.lib.config import PKIConfig
from matter_pki.lib.errors import ProvisioningError
from matter_pki.lib.intent import parse_intent
from matter_pki.lib.logging_config import LOGGER
from matter_pki.lib.models import ProvisioningResult
from matter_pki.lib.orchestrator import HierarchyOrchestrator


def build_parameters(args: argparse.Namespace) -> dict[str, object]:
    """Map CLI arguments onto deployment parameter names."""
    return {
        "generatePaa": True if args.generate_paa else None,
        "generatePaiCnt": args.generate_pai_count,
        "paaArn": args.paa_arn,
        "vendorId": args.vendor_id,
        "paaCommonName": args.paa_common_name,
        "paaOrganization": args.paa_organization,
        "paaOU": args.paa_ou,
        "productIds": args.product_ids,
        "paiCommonNames": args.pai_common_names,
        "paiOrganizations": args.pai_organizations,
        "paiOrganizationalUnits": args.pai_organizational_units,
        "validityInDays": args.validity_in_days,
        "validityEndDate": args.validity_end_date,
        "dacValidityInDays": args.dac_validity_in_days,
        "crlBucketName": args.crl_bucket_name,
    }


def write_outputs(result: ProvisioningResult, output_dir: Path) -> Path:
    """Write the provisioning result as outputs.json and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    outputs_path = output_dir / "outputs.json"
    outputs_path.write_text(json.dumps(result.to_dict(), indent=2))
    return outputs_path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Provision Matter PAA/PAI certificate authorities on AWS Private CA"
    )
    parser.add_argument("--region", default="us-east-1", help="Deployment region (default: us-east-1)")
    parser.add_argument("--prefix", default="", help="Name prefix for stacks, roles and audit resources")
    parser.add_argument(
        "--generate-paa",
        action="store_true",
        help="Create a new PAA instead of using --paa-arn (root mode only)",
    )
    parser.add_argument(
        "--generate-pai-count",
        type=int,
        help="Number of PAIs to create; selects subordinate mode",
    )
    parser.add_argument("--paa-arn", help="ARN of the existing PAA")
    parser.add_argument("--vendor-id", help="4-digit uppercase hex vendor id of a new PAA")
    parser.add_argument("--paa-common-name", help="Common Name of a new PAA")
    parser.add_argument("--paa-organization", help="Organization of a new PAA")
    parser.add_argument("--paa-ou", default="", help="Organizational Unit of a new PAA")
    parser.add_argument(
        "--product-ids", default="", help="Comma-separated product ids, one per PAI"
    )
    parser.add_argument("--pai-common-names", help="Comma-separated Common Names, one per PAI")
    parser.add_argument("--pai-organizations", help="Comma-separated Organizations, one per PAI")
    parser.add_argument(
        "--pai-organizational-units",
        default="",
        help="Comma-separated Organizational Units, one per PAI",
    )
    parser.add_argument(
        "--validity-in-days",
        type=int,
        help="Validity in days (default: 3650 for a PAA, 3600 for PAIs)",
    )
    parser.add_argument(
        "--validity-end-date",
        default="",
        help="Validity end date in YYYYMMDDHHMMSS format; excludes --validity-in-days",
    )
    parser.add_argument("--dac-validity-in-days", type=int, help="Validity in days for issued DACs")
    parser.add_argument("--crl-bucket-name", help="S3 bucket receiving the revocation lists")
    parser.add_argument(
        "--max-workers",
        type=int,
        default=4,
        help="PAIs provisioned in parallel (default: 4)",
    )
    parser.add_argument(
        "--no-force-refresh",
        action="store_true",
        help="Reuse issuance idempotency tokens across runs",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("matter_pki/output"),
        help="Output directory for outputs.json (default: matter_pki/output)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Provision the hierarchy described by the CLI arguments.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = parse_args(argv)

    try:
        config = PKIConfig(region=args.region, prefix=args.prefix, max_workers=args.max_workers)
        intent = parse_intent(build_parameters(args), config)
        LOGGER.info("Deployment intent: %s", type(intent).__name__)

        orchestrator = HierarchyOrchestrator(config, force_refresh=not args.no_force_refresh)
        result = orchestrator.provision(intent)

        outputs_path = write_outputs(result, args.output_dir)
        LOGGER.info("Wrote outputs to %s", outputs_path)

        for output in result.outputs:
            LOGGER.info(output.summary_line())
            LOGGER.info("  Certificate: %s", output.certificate_arn)
            LOGGER.info("  Console: %s", output.console_link)

        if not result.create_shared_resources:
            LOGGER.info("Regional audit resources are shared with the PAA deployment")

        if not result.succeeded:
            for failure in result.failures:
                LOGGER.error(
                    "Authority %s stopped at %s: %s",
                    failure.logical_id,
                    failure.state.name,
                    failure.error,
                )
            return 1

        return 0

    except ProvisioningError as e:
        LOGGER.error("Provisioning failed: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Unexpected failure: %s", e, exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
