"""Tests for :mod:`dirauth`."""
