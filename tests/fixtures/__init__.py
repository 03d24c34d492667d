"""Test fixtures for mocking remote API responses."""
