"""Tests for :mod:`dirauth.auth`."""
