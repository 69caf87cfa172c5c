"""
Extent Automation Kit
Per-worker Selenium sessions and extent HTML reports for pytest projects.
"""

from extent_automation_kit.utils import TestKitHelper
from extent_automation_kit.utils.drivers.DriverFactory import (
    DriverFactory,
    DriverNotInitializedError,
)
from extent_automation_kit.utils.reports.TestReporter import TestReporter

__version__ = TestKitHelper.get_version()

__all__ = ["DriverFactory", "DriverNotInitializedError", "TestReporter"]
