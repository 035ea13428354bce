"""
Tests package - Test suite for the sidecar injector.

Contains:
- unit/: Unit tests for individual components
"""
