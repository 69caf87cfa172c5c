"""
Builds the extent HTML report from terminal test results.

Nodes are created failed first, then skipped, then passed, and within each
bucket in start order, so that failures are at the top of the report.
"""

import logging
import platform
from pathlib import Path

from ..TestKitHelper import current_millis, get_env, millis_to_datetime
from .ExtentReportUtils import (
    ExtentHtmlReporter,
    ExtentReports,
    MediaEntityBuilder,
    MediaEntityError,
    Status,
    Theme,
)


logger = logging.getLogger(__name__)
logger.propagate = True

REPORT_DIR_PARTS = ("target", "extent-reports")
DEFAULT_BROWSER = "chrome"


def get_report_path(working_directory, millis, suite_name) -> Path:
    return Path(working_directory).joinpath(
        *REPORT_DIR_PARTS, f"Extent Report_{millis}_{suite_name}.html"
    )


def result_sort_key(result):
    return (result.start_millis, result.end_millis, result.name)


class TestReporter:
    """
    Reporter invoked once after all suites finish.

    Args:
        working_directory: Base directory of the report path (defaults to cwd)
        clock: Callable returning epoch milliseconds, used in the file name
        test_runner_output: Lines logged during the whole run
    """

    __test__ = False

    def __init__(self, working_directory=None, clock=None, test_runner_output=None):
        self.working_directory = Path(working_directory) if working_directory else Path.cwd()
        self.clock = clock or current_millis
        self.test_runner_output = list(test_runner_output or [])
        self.operating_system = platform.system().upper()
        self.system_architecture = platform.machine().upper()
        self.browser = get_env("BROWSER", DEFAULT_BROWSER).upper()
        self.extent = None
        self.report_path = None

    def generate_report(self, xml_suites, suites, output_directory=None):
        """
        Generate the HTML report for the executed suites.

        Args:
            xml_suites: Suite descriptors; the first one names the report
            suites: SuiteResult objects holding the terminal results
            output_directory: Framework output directory, not used for the
                report path so tooling can glob target/extent-reports

        Returns:
            Path of the written report
        """
        self.init(xml_suites)
        for suite in suites:
            for context in suite.results.values():
                self.build_test_nodes(context.failed, Status.FAIL)
                self.build_test_nodes(context.skipped, Status.SKIP)
                self.build_test_nodes(context.passed, Status.PASS)
        for line in self.test_runner_output:
            self.extent.set_test_runner_output(line)
        self.extent.flush()
        return self.report_path

    def init(self, xml_suites):
        suite_name = xml_suites[0].name
        report = get_report_path(self.working_directory, self.clock(), suite_name)
        if not report.parent.exists():
            try:
                report.parent.mkdir(parents=True)
            except OSError as e:
                logger.error(f"Unable to create path: {report.parent}: {e}", exc_info=True)

        html_reporter = ExtentHtmlReporter(report)
        html_reporter.config().set_document_title(f"ExtentReports: {suite_name}")
        html_reporter.config().set_report_name(suite_name)
        html_reporter.config().set_theme(Theme.STANDARD)
        html_reporter.config().set_encoding("UTF-8")

        self.extent = ExtentReports()
        self.extent.attach_reporter(html_reporter)
        self.extent.set_report_uses_manual_configuration(True)
        self.extent.set_system_info("Operating System", self.operating_system)
        self.extent.set_system_info("System Architecture", self.system_architecture)
        self.extent.set_system_info("Browser Selection", self.browser)
        self.report_path = report

    def build_test_nodes(self, results, status):
        for result in sorted(results, key=result_sort_key):
            test = self.extent.create_test(f"{result.context_name} - {result.name}")
            test.assign_category(result.class_name)
            if result.parameters:
                test.info(", ".join(str(p) for p in result.parameters))
            for line in result.output:
                test.info(line)
            test.log(status, f"Test [{result.name}] {status}ed")
            if result.failure is not None:
                self._log_failure(test, status, result.failure)
            test.start_time = millis_to_datetime(result.start_millis)
            test.end_time = millis_to_datetime(result.end_millis)

    def _log_failure(self, test, status, failure):
        media = None
        if failure.screenshot_base64:
            try:
                media = MediaEntityBuilder.create_screen_capture_from_base64_string(
                    failure.screenshot_base64
                ).build()
            except MediaEntityError as e:
                logger.error(f"Unable to add screenshot to extent report: {e}")
        test.log(status, failure.error, media)
