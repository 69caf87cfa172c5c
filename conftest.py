"""
Root conftest.py - browser sessions, fixtures and the extent report come from the
extent_automation_kit plugin. Project-specific hook implementations go here.
"""

import logging

import pytest

pytest_plugins = ["pytester"]

logger = logging.getLogger(__name__)


# ============================================================================
# pytest_extent_report_ready Hook Implementation
# ============================================================================
# Called after the extent report is written to target/extent-reports.
# Use this to send the report by email, upload it or archive it with CI artifacts.


@pytest.hookimpl(optionalhook=True)
def pytest_extent_report_ready(config, report_path):
    logger.info(f"Extent report ready at: {report_path}")
