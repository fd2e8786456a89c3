"""Test fixtures for matter_pki tests."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from matter_pki.lib.config import PKIConfig
from matter_pki.lib.orchestrator import HierarchyOrchestrator
from matter_pki.tests.fakes import FakeAuthority, FakePrivateCA, FakeSSMClient


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """Return temporary directory for test output artifacts."""
    return tmp_path


@pytest.fixture
def pki_config() -> PKIConfig:
    """Return provisioning config for the us-east-1 deployment."""
    return PKIConfig(region="us-east-1", prefix="Test", max_workers=4)


@pytest.fixture
def fake_pca() -> FakePrivateCA:
    """Return an empty in-memory Private CA."""
    return FakePrivateCA()


@pytest.fixture
def fake_ssm() -> FakeSSMClient:
    """Return an in-memory parameter store."""
    return FakeSSMClient()


@pytest.fixture
def mock_s3_client() -> MagicMock:
    """Return S3 client reporting every bucket as present in us-east-1."""
    mock = MagicMock()
    mock.get_bucket_region.return_value = "us-east-1"
    return mock


@pytest.fixture
def existing_paa(fake_pca: FakePrivateCA) -> FakeAuthority:
    """Return an active PAA in us-west-2 with VID FFF1."""
    return fake_pca.create_active_root(region="us-west-2")


@pytest.fixture
def orchestrator(
    pki_config: PKIConfig,
    fake_pca: FakePrivateCA,
    fake_ssm: FakeSSMClient,
    mock_s3_client: MagicMock,
) -> HierarchyOrchestrator:
    """Return orchestrator wired to the in-memory collaborators."""
    return HierarchyOrchestrator(
        pki_config,
        pca_client_for_region=fake_pca.client,
        ssm_client=fake_ssm,
        s3_client=mock_s3_client,
    )
