"""Unit tests for loading the sidecar configuration file."""

import pytest
from pydantic import ValidationError

from sidecar_injector.errors import ConfigurationError
from sidecar_injector.models.sidecar import SidecarSpec
from sidecar_injector.utils.sidecar_config import load_sidecar_spec, parse_sidecar_spec


class TestParseSidecarSpec:
    """Test parse_sidecar_spec."""

    def test_yaml_document(self, sidecar_spec):
        assert [c.name for c in sidecar_spec.containers] == [
            "sidecar-nginx",
            "sidecar-agent",
        ]
        assert [v.name for v in sidecar_spec.volumes] == ["nginx-conf"]
        assert sidecar_spec.image_pull_secret_dicts() == [{"name": "registry-credentials"}]

    def test_json_document(self):
        spec = parse_sidecar_spec(
            '{"containers": [{"name": "c", "image": "busybox:1"}], "unknown": 1}'
        )
        assert spec.container_dicts()[0]["image"] == "busybox:1"
        assert spec.volumes == ()

    def test_empty_document(self):
        assert parse_sidecar_spec("") == SidecarSpec()

    def test_volumes_are_defaulted(self, sidecar_spec):
        assert sidecar_spec.volume_dicts() == [
            {"name": "nginx-conf", "configMap": {"name": "nginx-configmap", "defaultMode": 420}}
        ]

    def test_invalid_yaml(self):
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            parse_sidecar_spec("containers: [unclosed", source="/cfg/sidecar.yaml")

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ConfigurationError, match="expected a mapping"):
            parse_sidecar_spec("- a\n- b\n")

    def test_schema_errors(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_sidecar_spec("containers:\n  - image: nginx\n", source="sidecar.yaml")

        assert exc_info.value.category == "configuration"
        assert exc_info.value.message.startswith("sidecar.yaml: ")
        assert "Action required" in str(exc_info.value)

    def test_spec_is_immutable(self, sidecar_spec):
        with pytest.raises(ValidationError):
            sidecar_spec.containers = ()


class TestLoadSidecarSpec:
    """Test load_sidecar_spec."""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "sidecarconfig.yaml"
        path.write_text("imagePullSecrets:\n  - name: regcred\n")

        spec = load_sidecar_spec(str(path))
        assert spec.image_pull_secret_dicts() == [{"name": "regcred"}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="cannot read configuration"):
            load_sidecar_spec(str(tmp_path / "missing.yaml"))
