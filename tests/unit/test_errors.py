"""Unit tests for the injector error hierarchy."""

from sidecar_injector.errors import (
    CertificateError,
    ConfigurationError,
    DeserializationError,
    InjectorError,
    WatcherError,
)


class TestInjectorErrors:
    def test_categories(self):
        assert DeserializationError("x").category == "deserialization"
        assert ConfigurationError("x").category == "configuration"
        assert CertificateError("x").category == "certificate"
        assert WatcherError("x").category == "watcher"

    def test_all_are_injector_errors(self):
        for error in (
            DeserializationError("x"),
            ConfigurationError("x"),
            CertificateError("x"),
            WatcherError("x"),
        ):
            assert isinstance(error, InjectorError)

    def test_deserialization_message_is_terse(self):
        error = DeserializationError("couldn't decode JSON document")
        assert str(error) == "couldn't decode JSON document"

    def test_configuration_error_includes_path_and_action(self):
        cause = OSError("permission denied")
        error = ConfigurationError("cannot read configuration", path="/cfg/a.yaml", cause=cause)

        assert error.message == "/cfg/a.yaml: cannot read configuration"
        assert "Action required" in str(error)
        assert error.cause is cause

    def test_certificate_error_names_files(self):
        error = CertificateError("cannot load key pair", cert_file="c.pem", key_file="k.pem")
        assert "(cert: c.pem, key: k.pem)" in error.message
