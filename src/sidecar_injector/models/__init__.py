"""
Models package - Pydantic models for type-safe admission handling.

Defines data models for:
- Sidecar material loaded from the configuration file
- Target pods carried inside admission requests
- AdmissionReview request/response envelopes
- The scheme used to decode admission envelopes
"""
