"""
Pytest configuration and fixtures for Slipway tests.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables
os.environ.setdefault("DOMAIN", "http://build.example.test")
os.environ.setdefault("MAIN_PATH", "/tmp/slipway-tests")
os.environ.setdefault("PORT", "9002")
os.environ.setdefault("TOKEN", "test-token")

DEMO_REVISION = "abc123"


@pytest.fixture
def apps_root(tmp_path):
    """MAIN_PATH with one application `demo` holding revision abc123."""
    root = tmp_path / "apps"
    demo = root / "demo"
    (demo / "sources").mkdir(parents=True)
    (demo / "cache").mkdir()
    (demo / "builds").mkdir()
    (demo / "sources" / f"{DEMO_REVISION}.tgz").write_bytes(b"\x1f\x8b fake archive")
    return root


@pytest.fixture
def settings(apps_root):
    """Settings pointing at the temporary apps tree."""
    from slipway.core.settings import Settings

    return Settings(
        main_path=apps_root,
        domain="http://build.example.test",
        port=9002,
        token="test-token",
        app_domain="example.test",
    )


@pytest.fixture
def workspace(apps_root):
    from slipway.core.workspace import WorkspaceManager

    return WorkspaceManager(apps_root)


@pytest.fixture
def build(workspace):
    """An allocated build of demo@abc123."""
    return workspace.allocate("demo", DEMO_REVISION)


def make_container(container_id: str, created: str) -> MagicMock:
    """Mock docker Container as returned by containers.list()."""
    container = MagicMock()
    container.id = container_id
    container.short_id = container_id[:10]
    container.attrs = {"Id": container_id, "Created": created}
    return container


@pytest.fixture
def mock_provider():
    """
    Mock DockerProvider where every step succeeds.

    The new release is `new-release`; `old-release` was created before it.
    """
    provider = MagicMock()
    provider.run_to_completion.return_value = 0

    release = make_container("new-release", "2026-10-18T10:00:05.5Z")
    provider.create_container.return_value = release
    provider.inspect.return_value = {
        "NetworkSettings": {"Ports": {"5000/tcp": None}},
    }
    provider.list_by_label.return_value = [
        make_container("old-release", "2026-10-18T09:00:00.123456789Z"),
        release,
    ]
    provider.is_connected.return_value = True
    return provider


@pytest.fixture
def mock_docker_client():
    """Mock Docker SDK client for DockerProvider tests."""
    client = MagicMock()
    client.ping.return_value = True

    container = MagicMock()
    container.id = "c0ffee" * 10
    container.short_id = "c0ffeec0ff"
    container.attach.return_value = iter([(b"-----> Compiling\n", None), (None, b"warning\n")])
    container.wait.return_value = {"StatusCode": 0}

    client.containers.create.return_value = container
    client.containers.get.return_value = container
    client.api.create_container.return_value = {"Id": container.id}

    return client


@pytest.fixture
def container_factory():
    """Factory for mock containers with a given id and creation time."""
    return make_container
