"""
Sidecar Injector - A mutating admission webhook for Kubernetes pods.

This webhook injects sidecar material into pods that opt in via annotation:
- Sidecar containers
- Shared volumes
- Image pull secrets

Configuration and TLS certificates are hot-reloaded without restarting
the HTTPS listener.
"""

__version__ = "0.1.0"
