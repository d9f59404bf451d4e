"""Tests for :mod:`dirauth.sessions`."""
