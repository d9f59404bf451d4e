"""Tests for :mod:`dirauth.users`."""
