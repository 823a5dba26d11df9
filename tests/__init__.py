"""
Test Suite

Contains unit and integration tests for the gateway.

Structure:
- tests/unit/: Tests for individual components (metrics, storage, cache manager,
  network client, config) and the FastAPI app with a fake origin

Uses pytest with pytest-asyncio for testing async functionality.
"""
