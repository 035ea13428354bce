"""
Loading of the sidecar configuration file.

The file is YAML (or JSON, which YAML parses too) with three optional lists:
``containers``, ``volumes`` and ``imagePullSecrets``. Unknown top-level keys
are ignored.
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from sidecar_injector.errors import ConfigurationError
from sidecar_injector.models.sidecar import SidecarSpec

logger = logging.getLogger(__name__)


def parse_sidecar_spec(data: bytes | str, source: str | None = None) -> SidecarSpec:
    """
    Parse and validate sidecar configuration content.

    Args:
        data: YAML or JSON document
        source: Where the document came from (for error messages)

    Returns:
        The validated, defaulted sidecar spec

    Raises:
        ConfigurationError: If the document is not valid YAML or does not
            match the sidecar schema
    """
    try:
        document = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML: {e}", path=source, cause=e) from e

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ConfigurationError(
            f"expected a mapping at the top level, got {type(document).__name__}",
            path=source,
        )

    try:
        return SidecarSpec.model_validate(document)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"invalid sidecar configuration: {e}", path=source, cause=e
        ) from e


def load_sidecar_spec(path: str) -> SidecarSpec:
    """
    Read and parse the sidecar configuration file at ``path``.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ConfigurationError(
            f"cannot read configuration: {e.strerror or e}", path=path, cause=e
        ) from e

    spec = parse_sidecar_spec(data, source=path)
    logger.debug(
        f"Loaded sidecar configuration from {path}: "
        f"{len(spec.containers)} containers, {len(spec.volumes)} volumes, "
        f"{len(spec.image_pull_secrets)} image pull secrets"
    )
    return spec
