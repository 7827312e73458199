"""Shared pytest configuration: exposes the fixtures package to every test."""

from fixtures.sample_data import *  # noqa: F401,F403
