"""
Utils package - Utility modules for sidecar injector functionality.

Contains helper modules for:
- Kubernetes core/v1 defaulting of injected material
- JSON-Patch operation building
- Sidecar configuration and TLS certificate loading
- Filesystem change notification
- Async read/write locking
"""
