"""
Extent Automation Kit - Pytest Plugin
Provides per-worker browser sessions and writes an extent HTML report at the end of the run.

PYTEST HOOK EXECUTION ORDER (Session Lifecycle):
=====================================================

PHASE 1: SESSION INITIALIZATION
1. pytest_addhooks              - Register pytest_extent_* hook specifications
2. pytest_addoption             - Register command-line options
3. pytest_plugin_registered     - Unregister pytest-xdist when parallel execution is disabled
4. pytest_configure             - Load .env files, create driver factory and result store
5. pytest_report_header         - Add browser/parallel information to the header

PHASE 2: TEST COLLECTION
6. pytest_generate_tests        - Parametrize tests with CSV/Excel data

PHASE 3: TEST EXECUTION (per test)
7. pytest_runtest_setup         - Start the test's output log and start time
8. pytest_runtest_makereport    - Capture phase reports, failure screenshot and final result

PHASE 4: XDIST WORKER COORDINATION (parallel execution only)
9. pytest_testnodedown          - Aggregate worker results to master

PHASE 5: SESSION FINALIZATION
10. pytest_terminal_summary     - Print result counts
11. pytest_unconfigure          - Close all browser sessions, generate the extent report

CUSTOM HOOKS:
=============
- pytest_extent_report_ready    - Notified with the path of the written report
"""

import logging
import os

from dotenv import find_dotenv, load_dotenv
import pytest
from selenium.webdriver.support.ui import WebDriverWait

from .utils import get_env, load_test_data
from .utils.TestKitHelper import (
    aggregate_runner_output,
    aggregate_test_results,
    build_test_result,
    count_statuses,
    current_millis,
    flatten_results,
    get_version,
)
from .utils.drivers.DriverFactory import DriverFactory
from .utils.reporter_output import ReporterOutput
from .utils.reports.TestReporter import TestReporter
from .utils.reports.models import SuiteResult, XmlSuite


logger = logging.getLogger(__name__)
logger.propagate = True

_MASTER_CONFIG = None  # Global reference to master config for xdist aggregation


# ============================================================================
# Session initialization
# ============================================================================


def pytest_addhooks(pluginmanager):
    from . import hookspec

    pluginmanager.add_hookspecs(hookspec)


def pytest_addoption(parser):
    """
    Options:
    - --suite-name: Suite name used in the report title and file name
    - --extent-browser: Browser to drive (chrome, firefox, edge); overrides BROWSER
    """
    group = parser.getgroup("extent-reporter", "Extent Reporter Options")
    group.addoption(
        "--suite-name",
        action="store",
        dest="extent_suite_name",
        default=None,
        help="Suite name for the extent report (default: name of the rootdir)",
    )
    group.addoption(
        "--extent-browser",
        action="store",
        dest="extent_browser",
        default=None,
        help="Browser to use: chrome, firefox or edge (default: BROWSER env or chrome)",
    )


def pytest_plugin_registered(plugin, manager):
    # PARALLEL_EXECUTION=N disables pytest-xdist even when -n is given
    if str(plugin).find("xdist.dsession.DSession") != -1:
        parallel_execution = get_env("PARALLEL_EXECUTION", "Y").strip().upper()
        if parallel_execution == "N":
            logger.warning("Parallel execution disabled, unregistering pytest-xdist")
            manager.unregister(plugin)


def pytest_configure(config):
    """
    Initialize plugin state.

    Config attributes created:
    - config._driver_factory: DriverFactory owning every browser session of this process
    - config._reporter_output: Lines logged by tests through report_log
    - config.test_results_summary: List of TestResult collected in this process
    """
    load_dotenv(find_dotenv(usecwd=True))

    app_env = os.getenv("APP_ENV", "").upper()
    if app_env:
        env_file = f".env.{app_env.lower()}"
        if os.path.exists(env_file):
            load_dotenv(env_file, override=True)
            logger.info(f"Loaded environment-specific config from {env_file}")
        else:
            logger.warning(
                f"Environment file {env_file} not found for APP_ENV={app_env}"
            )

    browser = config.getoption("extent_browser", None)
    if browser:
        os.environ["BROWSER"] = browser

    config.addinivalue_line(
        "markers", "datafile(name): parametrize the test's row fixture from data/<name>"
    )

    config._driver_factory = DriverFactory()
    config._reporter_output = ReporterOutput()
    config.test_results_summary = []

    global _MASTER_CONFIG
    if not hasattr(config, "workerinput"):
        _MASTER_CONFIG = config


def pytest_report_header(config):
    if hasattr(config, "workerinput"):
        return

    parallel_execution = get_env("PARALLEL_EXECUTION", "Y").upper()
    parallel_status = (
        "Enabled (pytest-xdist)" if parallel_execution == "Y" else "Disabled (Serial execution)"
    )

    return [
        f"Extent Automation Kit v{get_version()}",
        f"Browser:        {get_env('BROWSER', 'chrome').upper()}",
        f"Headless:       {get_env('HEADLESS', 'N').upper()}",
        f"Parallel Mode:  {parallel_status}",
    ]


# ============================================================================
# Test collection
# ============================================================================


def pytest_generate_tests(metafunc):
    """
    Parametrize tests marked with @pytest.mark.datafile("file.csv") that use the row fixture.
    Data files live in data/ next to the tests/ directory.
    """
    marker = metafunc.definition.get_closest_marker("datafile")
    if not marker or not marker.args:
        return

    if "row" not in metafunc.fixturenames:
        return

    data_file = marker.args[0]
    data_path = metafunc.definition.path.parent.parent / "data" / data_file

    rows = load_test_data(data_path)
    if not rows:
        logger.error(
            f"Failed to load data file '{data_file}' at {data_path}; "
            f"file may not exist, be empty, or have encoding issues"
        )
        pytest.fail(f"Data file '{data_file}' could not be loaded from {data_path}")

    metafunc.parametrize("row", rows)


# ============================================================================
# Test execution
# ============================================================================


@pytest.hookimpl(tryfirst=True)
def pytest_runtest_setup(item):
    item._start_millis = current_millis()
    item._phase_reports = {}
    item.config._reporter_output.begin_test(item.nodeid)


def _capture_failure_screenshot(item):
    factory = getattr(item.config, "_driver_factory", None)
    handle = factory.active_thread() if factory else None
    if handle is None or not handle.has_driver or handle.closed:
        return None
    try:
        return handle.get_driver().get_screenshot_as_base64()
    except Exception as e:
        logger.warning(f"Could not capture failure screenshot for {item.nodeid}: {e}")
        return None


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """
    Store each phase report on the item; after teardown build the TestResult.

    A failure screenshot is taken from the thread's browser session, if one was
    started, when the setup or call phase fails.
    """
    outcome = yield
    report = outcome.get_result()

    if not hasattr(item, "_phase_reports"):
        item._phase_reports = {}
    item._phase_reports[call.when] = report

    if report.failed and call.when in ("setup", "call"):
        if getattr(item, "_failure_screenshot", None) is None:
            item._failure_screenshot = _capture_failure_screenshot(item)

    if call.when != "teardown":
        return

    item._end_millis = current_millis()
    reporter_output = item.config._reporter_output
    result = build_test_result(item, reporter_output.end_test())

    item.config.test_results_summary.append(result)

    # For xdist workers: sync to workeroutput for master aggregation
    if hasattr(item.config, "workeroutput"):
        item.config.workeroutput["test_results_summary"] = [
            r.to_dict() for r in item.config.test_results_summary
        ]
        item.config.workeroutput["runner_output"] = reporter_output.get_output()


# ============================================================================
# XDIST worker coordination
# ============================================================================


@pytest.hookimpl(optionalhook=True)
def pytest_testnodedown(node, error):
    """Aggregate results of a finished xdist worker into the master config."""
    config = _MASTER_CONFIG
    if config is None:
        logger.warning("Master config not available for result aggregation")
        return

    worker_id = (
        node.workerinput.get("workerid", "unknown")
        if hasattr(node, "workerinput")
        else "unknown"
    )
    if error:
        logger.warning(f"Worker {worker_id} encountered error: {error}")

    if not hasattr(node, "workeroutput") or node.workeroutput is None:
        return

    if not hasattr(config, "_test_results_from_workers"):
        config._test_results_from_workers = []
    if not hasattr(config, "_runner_output_from_workers"):
        config._runner_output_from_workers = []

    flatten_results(node.workeroutput.get("test_results_summary", []), config)
    config._runner_output_from_workers.extend(node.workeroutput.get("runner_output", []))


# ============================================================================
# Session finalization
# ============================================================================


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    if hasattr(config, "workerinput"):
        return

    results = aggregate_test_results(config)
    if not results:
        return

    counts = count_statuses(results)
    terminalreporter.ensure_newline()
    terminalreporter.section("Extent Report Summary", sep="=")
    terminalreporter.write_line(f"Total Tests:  {counts['total']}")
    terminalreporter.write_line(f"Passed:       {counts['passed']}")
    terminalreporter.write_line(f"Failed:       {counts['failed']}")
    terminalreporter.write_line(f"Skipped:      {counts['skipped']}")
    pass_rate = (counts["passed"] / counts["total"]) * 100
    terminalreporter.write_line(f"Pass Rate:    {pass_rate:.1f}%")


def get_suite_name(config) -> str:
    return config.getoption("extent_suite_name", None) or config.rootpath.name


def pytest_unconfigure(config):
    """
    Close every browser session of this process, then (master only) write the extent report.
    """
    factory = getattr(config, "_driver_factory", None)
    if factory is not None:
        factory.close_driver_objects()

    if hasattr(config, "workerinput"):
        return

    results = aggregate_test_results(config)
    if not results:
        return

    suite_name = get_suite_name(config)
    suite = SuiteResult.from_results(suite_name, results)
    reporter = TestReporter(test_runner_output=aggregate_runner_output(config))

    try:
        report_path = reporter.generate_report(
            [XmlSuite(suite_name)], [suite], str(config.rootpath)
        )
    except Exception as e:
        logger.error(f"Failed to generate extent report: {e}", exc_info=True)
        return

    print(f"\nExtent report generated: {report_path}", flush=True)
    config.hook.pytest_extent_report_ready(config=config, report_path=str(report_path))


# ============================================================================
# Pytest Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def row(request):
    """One row of the @pytest.mark.datafile data file, as a dict of strings."""
    return request.param


@pytest.fixture(scope="session")
def driver_factory(request):
    """
    The run's DriverFactory, bound to the thread running the tests.

    Every browser session it hands out is closed in pytest_unconfigure.
    """
    factory = request.config._driver_factory
    factory.instantiate_driver_object()
    return factory


@pytest.fixture(scope="function")
def driver(driver_factory):
    """
    The worker's WebDriver. The session is shared by the tests of the worker;
    its cookies are deleted after each test.

    Environment Variables:
    - BROWSER (default: "chrome"): chrome, firefox or edge
    - HEADLESS (default: "N"): "Y" runs the browser without a window
    """
    web_driver = driver_factory.get_driver()
    yield web_driver
    try:
        driver_factory.quit_driver()
    except Exception as e:
        logger.warning(f"Could not delete cookies after test: {e}")


@pytest.fixture(scope="function")
def proxy(driver_factory):
    """The worker's running ProxyServer (mitmdump)."""
    return driver_factory.get_proxy()


@pytest.fixture(scope="function")
def proxy_driver(driver_factory):
    """The worker's WebDriver routed through the proxy; cookies are deleted after each test."""
    web_driver = driver_factory.get_proxy_enabled_driver()
    yield web_driver
    try:
        web_driver.delete_all_cookies()
    except Exception as e:
        logger.warning(f"Could not delete cookies of proxy driver after test: {e}")


@pytest.fixture()
def wait(driver):
    """WebDriverWait with a timeout of WAIT_TIME seconds (default 15)."""
    timeout = int(get_env("WAIT_TIME", "15"))
    return WebDriverWait(driver, timeout)


@pytest.fixture()
def report_log(request):
    """
    Callable that logs a line into the extent report.

    The line is shown in the test's node and in the runner output section.

    Usage:
        def test_login(driver, report_log):
            report_log("Opening login page")
    """
    return request.config._reporter_output.log
