"""
Service layer for the sidecar injector.

This module contains the injection decision engine, the hot-swappable
configuration store and the coordinator that reloads it.
"""
