"""
Hook specifications for extent_automation_kit plugin.
These hooks allow source projects to react to the generated report.
"""

import pytest


@pytest.hookspec
def pytest_extent_report_ready(config, report_path):
    """
    Hook specification for source projects to receive the generated extent report.

    This hook is called after the HTML report has been flushed to disk.
    Source projects can implement this hook in their conftest.py to:
    - Send the report as an email attachment
    - Upload the report to cloud storage
    - Archive reports with CI build artifacts

    Args:
        config: Pytest config object with access to options and settings
        report_path: Absolute path of the saved HTML report file

    Returns:
        None. This is a notification hook, return values are ignored.

    Example in source project's conftest.py:
        @pytest.hookimpl
        def pytest_extent_report_ready(config, report_path):
            shutil.copy(report_path, os.environ["CI_ARTIFACTS_DIR"])
    """
