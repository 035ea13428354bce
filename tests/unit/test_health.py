"""Unit tests for the liveness heartbeat file."""

from unittest.mock import patch

from sidecar_injector.observability.health import HealthFileWriter


class TestHealthFileWriter:
    """Tests for HealthFileWriter.write."""

    def test_writes_ok(self, tmp_path):
        path = tmp_path / "health"
        result = HealthFileWriter(str(path)).write()

        assert result.status == "healthy"
        assert path.read_bytes() == b"ok"

    def test_overwrites_previous_content(self, tmp_path):
        path = tmp_path / "health"
        path.write_text("stale content from a previous run")

        HealthFileWriter(str(path)).write()
        assert path.read_bytes() == b"ok"

    @patch("sidecar_injector.observability.health.metrics_collector")
    def test_failure_is_reported_not_raised(self, mock_collector, tmp_path):
        result = HealthFileWriter(str(tmp_path / "absent" / "health")).write()

        assert result.status == "unhealthy"
        assert "Failed to write health file" in result.message
        mock_collector.record_health_write.assert_called_once_with(success=False)
