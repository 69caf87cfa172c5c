import pytest

INNER_CONFTEST = """
import base64
from unittest.mock import MagicMock

import pytest

SCREENSHOT = base64.b64encode(b"fake png").decode()


class FakeWebDriverThread:
    def __init__(self):
        self.driver = MagicMock(name="driver")
        self.driver.get_screenshot_as_base64.return_value = SCREENSHOT
        self.closed = False

    @property
    def has_driver(self):
        return True

    def get_driver(self):
        return self.driver

    def quit_driver(self):
        self.closed = True


@pytest.hookimpl(trylast=True)
def pytest_configure(config):
    config._driver_factory._handle_factory = FakeWebDriverThread


@pytest.hookimpl(optionalhook=True)
def pytest_extent_report_ready(config, report_path):
    closed = all(handle.closed for handle in config._driver_factory.pool)
    with open("report_ready.txt", "w") as f:
        f.write(f"{report_path}\\n{len(config._driver_factory.pool)}\\n{closed}")
"""

INNER_TESTS = """
import pytest


class TestCart:
    def test_add(self, report_log):
        report_log("adding item to cart")

    @pytest.mark.parametrize("qty", [1, 2])
    def test_quantity(self, qty):
        assert qty > 0


def test_broken(driver):
    driver.get("https://shop.example")
    assert False, "total mismatch"


def test_later():
    pytest.skip("not ready")
"""


@pytest.fixture
def shop_run(pytester, monkeypatch):
    monkeypatch.delenv("BROWSER", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    pytester.makeconftest(INNER_CONFTEST)
    pytester.makepyfile(test_shop=INNER_TESTS)
    result = pytester.runpytest("--suite-name", "Shop", "-p", "no:cacheprovider")
    reports = sorted((pytester.path / "target" / "extent-reports").glob("Extent Report_*_Shop.html"))
    return result, reports


def test_run_outcomes_and_summary(shop_run):
    result, _ = shop_run

    result.assert_outcomes(passed=3, failed=1, skipped=1)
    result.stdout.fnmatch_lines(["*Extent Report Summary*", "Total Tests:  5", "Failed:       1"])


def test_one_report_is_written(shop_run):
    _, reports = shop_run

    assert len(reports) == 1


def test_report_orders_failures_first(shop_run):
    _, reports = shop_run
    html = reports[0].read_text(encoding="utf-8")

    broken = html.index("test_shop - test_broken")
    later = html.index("test_shop - test_later")
    add = html.index("test_shop - test_add")
    assert broken < later < add
    assert html.index("test_shop - test_quantity[1]") < html.index("test_shop - test_quantity[2]")


def test_report_content(shop_run):
    _, reports = shop_run
    html = reports[0].read_text(encoding="utf-8")

    assert "Test [test_broken] FAILed" in html
    assert "Test [test_later] SKIPed" in html
    assert "Test [test_add] PASSed" in html
    assert "total mismatch" in html
    assert "data:image/png;base64," in html
    assert "adding item to cart" in html
    assert "TestCart" in html
    assert "ExtentReports: Shop" in html


def test_sessions_closed_before_report_ready(shop_run, pytester):
    _, reports = shop_run

    report_path, pool_size, closed = (pytester.path / "report_ready.txt").read_text().splitlines()
    assert report_path == str(reports[0])
    assert pool_size == "1"
    assert closed == "True"


def test_report_log_lines_reach_runner_output(shop_run):
    _, reports = shop_run
    html = reports[0].read_text(encoding="utf-8")

    assert "<h2>Runner Output</h2>" in html
    runner_output = html.split('<pre class="runner-output">', 1)[1].split("</pre>", 1)[0]
    assert "adding item to cart" in runner_output


def test_report_is_written_without_xdist(pytester, monkeypatch):
    monkeypatch.delenv("BROWSER", raising=False)
    pytester.makepyfile(test_plain="def test_ok(report_log):\n    report_log('serial line')\n")

    result = pytester.runpytest("-p", "no:xdist", "--suite-name", "Serial", "-p", "no:cacheprovider")

    result.assert_outcomes(passed=1)
    assert "INTERNALERROR" not in result.stdout.str()
    report = next((pytester.path / "target" / "extent-reports").glob("*_Serial.html"))
    assert "serial line" in report.read_text(encoding="utf-8")


def test_datafile_rows_become_parameters(pytester, monkeypatch):
    monkeypatch.delenv("BROWSER", raising=False)
    pytester.mkdir("data")
    (pytester.path / "data" / "users.csv").write_text("Username,Role\nalice,admin\n", encoding="utf-8")
    pytester.mkdir("tests")
    (pytester.path / "tests" / "test_users.py").write_text(
        "import pytest\n"
        "\n"
        "@pytest.mark.datafile('users.csv')\n"
        "def test_user(row):\n"
        "    assert row['Username'] == 'alice'\n",
        encoding="utf-8",
    )

    result = pytester.runpytest("--suite-name", "Users", "-p", "no:cacheprovider")

    result.assert_outcomes(passed=1)
    report = next((pytester.path / "target" / "extent-reports").glob("*_Users.html"))
    html = report.read_text(encoding="utf-8")
    assert "alice" in html
    assert "admin" in html
