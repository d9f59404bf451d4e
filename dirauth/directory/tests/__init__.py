"""Tests for :mod:`dirauth.directory`."""
