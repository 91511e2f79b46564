# =============================================================================
# SLIPWAY RELEASE SWAP TESTS
# =============================================================================
# Tests for retiring previous release containers.
# =============================================================================

from datetime import datetime, timezone

import pytest

from slipway.core.swap import ReleaseSwap, created_at
from slipway.infra.docker_client import ContainerRuntimeError


class TestCreatedAt:
    """Engine timestamps must order correctly despite trimmed zeros."""

    def test_parses_nanoseconds(self, container_factory):
        stamp = created_at(container_factory("a", "2026-10-18T09:00:00.123456789Z"))
        assert stamp == (datetime(2026, 10, 18, 9, 0, 0, tzinfo=timezone.utc), 123456789)

    def test_trimmed_fraction_orders_numerically(self, container_factory):
        shorter = created_at(container_factory("a", "2026-10-18T09:00:00.5Z"))
        longer = created_at(container_factory("b", "2026-10-18T09:00:00.12345Z"))
        assert longer < shorter

    def test_offset_timezone(self, container_factory):
        utc = created_at(container_factory("a", "2026-10-18T09:00:00Z"))
        shifted = created_at(container_factory("b", "2026-10-18T11:00:00+02:00"))
        assert utc == shifted

    def test_unparseable(self, container_factory):
        assert created_at(container_factory("a", "yesterday")) is None


class TestFindPrevious:
    """Tests for ReleaseSwap.find_previous()."""

    def test_excludes_new_and_newer(self, mock_provider, container_factory):
        new = container_factory("new", "2026-10-18T10:00:00Z")
        mock_provider.list_by_label.return_value = [
            container_factory("newer", "2026-10-18T10:00:01Z"),
            new,
            container_factory("old-2", "2026-10-18T09:30:00Z"),
            container_factory("old-1", "2026-10-18T09:00:00Z"),
        ]

        previous = ReleaseSwap(mock_provider).find_previous("demo", "new")

        assert [c.id for c in previous] == ["old-1", "old-2"]
        mock_provider.list_by_label.assert_called_once_with("traefik.backend", "demo")

    def test_new_container_not_listed(self, mock_provider, container_factory):
        mock_provider.list_by_label.return_value = [
            container_factory("old", "2026-10-18T09:00:00Z"),
        ]
        assert ReleaseSwap(mock_provider).find_previous("demo", "new") == []

    def test_unknown_creation_time_skipped(self, mock_provider, container_factory):
        mock_provider.list_by_label.return_value = [
            container_factory("new", "2026-10-18T10:00:00Z"),
            container_factory("odd", ""),
        ]
        assert ReleaseSwap(mock_provider).find_previous("demo", "new") == []


class TestRetireOld:
    """Tests for ReleaseSwap.retire_old()."""

    @pytest.mark.asyncio
    async def test_stops_previous_releases(self, mock_provider):
        outcomes = await ReleaseSwap(mock_provider).retire_old("demo", "new-release")

        assert [(o.container_id, o.stopped) for o in outcomes] == [("old-release", True)]
        mock_provider.stop.assert_called_once_with("old-release")

    @pytest.mark.asyncio
    async def test_never_stops_new_release(self, mock_provider):
        await ReleaseSwap(mock_provider).retire_old("demo", "new-release")

        stopped = [call.args[0] for call in mock_provider.stop.call_args_list]
        assert "new-release" not in stopped

    @pytest.mark.asyncio
    async def test_stop_failures_are_swallowed(self, mock_provider, container_factory):
        new = container_factory("new", "2026-10-18T10:00:00Z")
        mock_provider.list_by_label.return_value = [
            container_factory("old-1", "2026-10-18T08:00:00Z"),
            container_factory("old-2", "2026-10-18T09:00:00Z"),
            new,
        ]

        def stop(container_id):
            if container_id == "old-1":
                raise ContainerRuntimeError("already gone")

        mock_provider.stop.side_effect = stop

        outcomes = await ReleaseSwap(mock_provider).retire_old("demo", "new")

        assert [(o.container_id, o.stopped) for o in outcomes] == [
            ("old-1", False),
            ("old-2", True),
        ]
        assert "already gone" in outcomes[0].error

    @pytest.mark.asyncio
    async def test_nothing_to_retire(self, mock_provider, container_factory):
        mock_provider.list_by_label.return_value = [
            container_factory("new", "2026-10-18T10:00:00Z"),
        ]

        assert await ReleaseSwap(mock_provider).retire_old("demo", "new") == []
        mock_provider.stop.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_failure_propagates(self, mock_provider):
        mock_provider.list_by_label.side_effect = ContainerRuntimeError("engine down")

        with pytest.raises(ContainerRuntimeError):
            await ReleaseSwap(mock_provider).retire_old("demo", "new")
