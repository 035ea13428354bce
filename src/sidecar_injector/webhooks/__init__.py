"""
Admission webhook serving for the sidecar injector.

The mutation handler decodes AdmissionReview envelopes, asks the injection
service for a decision, and answers with a JSON-Patch when sidecars are
injected. The server module runs it behind a hot-swappable TLS listener.
"""

from .mutation import MutationWebhook
from .server import WebhookServer

__all__ = ["MutationWebhook", "WebhookServer"]
