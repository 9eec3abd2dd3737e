"""Pytest configuration and shared fixtures for ccrequery tests."""

from __future__ import annotations

import logging

import pytest


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async (deselect with '-m \"not asyncio\"')"),
        ("unit", "marks tests as unit tests"),
        ("requery", "marks tests as requery scheduling tests"),
        ("config", "marks tests as configuration tests"),
        ("cli", "marks tests as CLI tests"),
        ("concurrency", "marks tests that race threads against each other"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_ccrequery_env(monkeypatch, tmp_path):
    """Keep tests away from user config files and CCRQ_* overrides."""
    import os

    for name in list(os.environ):
        if name.startswith("CCRQ_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_global_config():
    """Drop the global configuration manager between tests."""
    from ccrequery.config.config import reset_config

    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    # setup_logging() detaches the package logger from the root
    package_logger = logging.getLogger("ccrequery")
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
