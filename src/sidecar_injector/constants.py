"""
Constants used throughout the sidecar injector.

This module defines all constant values used by the webhook including:
- Opt-in and status annotations on target pods
- JSON-Patch target paths
- Admission protocol literals
- Default timing values
"""

# Annotation constants (the webhook's protocol surface on target pods)
INJECT_ANNOTATION = "sidecar-injector-mesher.io/inject"
STATUS_ANNOTATION = "sidecar-injector-mesher.io/status"

# Values accepted (case-insensitively) on the inject annotation
INJECT_TRUE_VALUES = frozenset({"y", "yes"})
STATUS_INJECTED = "injected"

# JSON-Patch target paths
CONTAINERS_PATH = "/spec/containers"
VOLUMES_PATH = "/spec/volumes"
IMAGE_PULL_SECRETS_PATH = "/spec/imagePullSecrets"
ANNOTATIONS_PATH = "/metadata/annotations"
APPEND_MARKER = "-"

# Patch operation kinds
PATCH_OP_ADD = "add"
PATCH_OP_REPLACE = "replace"

# Admission protocol constants
ADMISSION_V1 = "admission.k8s.io/v1"
ADMISSION_V1BETA1 = "admission.k8s.io/v1beta1"
ADMISSION_REVIEW_KIND = "AdmissionReview"
PATCH_TYPE_JSON_PATCH = "JSONPatch"
JSON_CONTENT_TYPE = "application/json"

# Default webhook endpoint
DEFAULT_WEBHOOK_PATH = "/webhookmutation"

# Liveness heartbeat payload
HEALTH_CHECK_PAYLOAD = b"ok"

# Timing defaults (in seconds)
DEFAULT_RELOAD_DEBOUNCE = 0.1
DEFAULT_WATCHER_RESTART_DELAY = 1.0
DEFAULT_WATCHER_LIVENESS_INTERVAL = 1.0
