# =============================================================================
# SLIPWAY DEPLOYER TESTS
# =============================================================================
# Tests for the release container step.
# =============================================================================

import pytest

from slipway.core.deployer import (
    APP_LABEL,
    RELEASE_COMMAND,
    Deployer,
    PortBindingFailure,
    routing_labels,
)
from slipway.domain.models import BuildState
from slipway.infra.docker_client import ContainerRuntimeError


class TestRoutingLabels:
    def test_traefik_labels(self, settings):
        assert routing_labels("demo", settings) == {
            "traefik.backend": "demo",
            "traefik.docker.network": "web",
            "traefik.frontend.rule": "Host:demo.example.test",
            "traefik.enable": "true",
        }

    def test_app_label_key(self):
        assert APP_LABEL == "traefik.backend"


class TestDeploy:
    """Tests for Deployer.deploy()."""

    def test_creates_release_container(self, build, settings, mock_provider):
        Deployer(mock_provider, settings).deploy(build)

        mock_provider.create_container.assert_called_once_with(
            "imjching/slugr",
            command=RELEASE_COMMAND,
            volumes={str(build.artifact_path): {"bind": "/tmp/slugs/slug.tgz", "mode": "ro"}},
            environment=["PORT=5000"],
            ports={"5000/tcp": None},
            labels=routing_labels("demo", settings),
            network_mode="web",
        )

    def test_create_start_inspect_order(self, build, settings, mock_provider):
        container = Deployer(mock_provider, settings).deploy(build)

        mock_provider.start.assert_called_once_with(container)
        mock_provider.inspect.assert_called_once_with(container)
        assert build.release_container_id == "new-release"
        assert build.state == BuildState.DEPLOYING

    def test_log_lines(self, build, settings, mock_provider):
        build.log_file.write_text("compile output\n")

        Deployer(mock_provider, settings).deploy(build)

        assert build.log_file.read_text() == (
            "compile output\n"
            "-----> Launching...\n"
            f"       Released {build.short_id}\n"
            "       http://demo.example.test/ deployed\n"
        )

    def test_missing_port_raises(self, build, settings, mock_provider):
        mock_provider.inspect.return_value = {"NetworkSettings": {"Ports": {}}}

        with pytest.raises(PortBindingFailure) as exc_info:
            Deployer(mock_provider, settings).deploy(build)

        assert exc_info.value.port == "5000/tcp"
        assert exc_info.value.container_id == "new-release"
        assert "Release failed" in build.log_file.read_text()

    def test_no_network_settings_raises(self, build, settings, mock_provider):
        mock_provider.inspect.return_value = {"NetworkSettings": None}

        with pytest.raises(PortBindingFailure):
            Deployer(mock_provider, settings).deploy(build)

    def test_custom_release_port(self, build, settings, mock_provider):
        settings = settings.model_copy(update={"release_port": 8080})
        mock_provider.inspect.return_value = {"NetworkSettings": {"Ports": {"8080/tcp": None}}}

        Deployer(mock_provider, settings).deploy(build)

        kwargs = mock_provider.create_container.call_args.kwargs
        assert kwargs["environment"] == ["PORT=8080"]
        assert kwargs["ports"] == {"8080/tcp": None}

    def test_start_failure_propagates(self, build, settings, mock_provider):
        mock_provider.start.side_effect = ContainerRuntimeError("no")

        with pytest.raises(ContainerRuntimeError):
            Deployer(mock_provider, settings).deploy(build)
        mock_provider.inspect.assert_not_called()
