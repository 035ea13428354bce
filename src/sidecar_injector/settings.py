"""Injector settings read from the environment with pydantic-settings.

File paths default to conventional in-cluster mounts: the sidecar ConfigMap
under /etc/webhook/config and the serving Secret under /etc/webhook/certs.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sidecar_injector.constants import DEFAULT_RELOAD_DEBOUNCE, DEFAULT_WEBHOOK_PATH


class Settings(BaseSettings):
    """Process-wide injector configuration.

    Field names are Python attributes; the environment variable for each is its
    ``validation_alias``.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # HTTPS listener
    webhook_host: str = Field(
        default="0.0.0.0",
        validation_alias="WEBHOOK_HOST",
        description="Host address to bind the admission webhook server",
    )
    webhook_port: int = Field(
        default=8443,
        validation_alias="WEBHOOK_PORT",
        description="Port for the admission webhook server",
    )
    webhook_path: str = Field(
        default=DEFAULT_WEBHOOK_PATH,
        validation_alias="WEBHOOK_PATH",
        description="HTTP path serving mutation AdmissionReviews",
    )

    # TLS material
    cert_file: str = Field(
        default="/etc/webhook/certs/cert.pem",
        validation_alias="TLS_CERT_FILE",
        description="PEM encoded serving certificate (hot-reloaded)",
    )
    key_file: str = Field(
        default="/etc/webhook/certs/key.pem",
        validation_alias="TLS_KEY_FILE",
        description="PEM encoded private key for the serving certificate (hot-reloaded)",
    )

    # Sidecar configuration
    sidecar_config_file: str = Field(
        default="/etc/webhook/config/sidecarconfig.yaml",
        validation_alias="SIDECAR_CONFIG_FILE",
        description="YAML or JSON file describing containers, volumes and pull secrets to inject",
    )
    reload_debounce_seconds: float = Field(
        default=DEFAULT_RELOAD_DEBOUNCE,
        validation_alias="RELOAD_DEBOUNCE_SECONDS",
        description="Quiet period after the last file change before reloading",
        gt=0,
    )

    # Liveness heartbeat file
    health_check_interval_seconds: float = Field(
        default=0.0,
        validation_alias="HEALTH_CHECK_INTERVAL_SECONDS",
        description="Interval between health file writes (0 disables the heartbeat)",
        ge=0,
    )
    health_check_file: str = Field(
        default="",
        validation_alias="HEALTH_CHECK_FILE",
        description="Path of the health file written on each heartbeat (empty disables)",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logger level",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Emit one JSON object per log line",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Tag log lines with the admission request UID",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log requests to health and metrics endpoints",
    )

    # Metrics and observability
    metrics_enabled: bool = Field(
        default=True,
        validation_alias="METRICS_ENABLED",
        description="Serve Prometheus metrics and probe endpoints",
    )
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port serving /metrics, /healthz and /ready",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Interface the metrics and probe server binds to",
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        validation_alias="TRACING_ENABLED",
        description="Enable OpenTelemetry tracing",
    )
    tracing_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="TRACING_ENDPOINT",
        description="OTLP gRPC collector endpoint",
    )
    tracing_sample_rate: float = Field(
        default=1.0,
        validation_alias="TRACING_SAMPLE_RATE",
        description="Fraction of root spans to sample (0.0-1.0)",
        ge=0.0,
        le=1.0,
    )
    tracing_service_name: str = Field(
        default="sidecar-injector",
        validation_alias="TRACING_SERVICE_NAME",
        description="Service name reported on spans",
    )

    @property
    def health_check_enabled(self) -> bool:
        """Heartbeat runs only when both an interval and a target file are set."""
        return self.health_check_interval_seconds > 0 and bool(self.health_check_file)


# Read once at import; tests build their own Settings instances
settings = Settings()
