import base64

import pytest

from extent_automation_kit.utils.reports.ExtentReportUtils import (
    ExtentHtmlReporter,
    ExtentReports,
    MediaEntityBuilder,
    MediaEntityError,
    Status,
    Theme,
)


def test_media_entity_from_valid_base64():
    encoded = base64.b64encode(b"image bytes").decode()

    media = MediaEntityBuilder.create_screen_capture_from_base64_string(encoded).with_title("page").build()

    assert media.base64_string == encoded
    assert media.title == "page"
    assert media.data_uri.startswith("data:image/png;base64,")


@pytest.mark.parametrize("value", ["", None, "%%%%", "abc"])
def test_media_entity_rejects_invalid_base64(value):
    with pytest.raises(MediaEntityError):
        MediaEntityBuilder.create_screen_capture_from_base64_string(value)


def test_media_entity_error_is_an_io_error():
    assert issubclass(MediaEntityError, IOError)


def test_node_status_is_worst_logged_severity():
    report = ExtentReports()
    test = report.create_test("checkout - test_a")

    assert test.status is Status.PASS
    test.info("step")
    assert test.status is Status.PASS
    test.skip("skipped")
    assert test.status is Status.SKIP
    test.fail("assertion")
    assert test.status is Status.FAIL


def test_exception_details_are_formatted():
    test = ExtentReports().create_test("t")

    test.log(Status.FAIL, ValueError("bad total"))

    assert test.logs[0].details == "ValueError: bad total"


def test_categories_are_unique():
    test = ExtentReports().create_test("t")

    test.assign_category("TestCart", "TestCart", "")

    assert test.categories == ["TestCart"]


def test_flush_writes_html(tmp_path):
    path = tmp_path / "report.html"
    html_reporter = ExtentHtmlReporter(path)
    html_reporter.config().set_document_title("ExtentReports: Nightly")
    html_reporter.config().set_report_name("Nightly")
    html_reporter.config().set_theme(Theme.DARK)
    report = ExtentReports()
    report.attach_reporter(html_reporter)
    report.set_system_info("Browser Selection", "CHROME")
    report.create_test("cart - test_add").pass_("added <item>")
    report.create_test("cart - test_remove").fail("removed nothing")

    report.flush()

    html = path.read_text(encoding="utf-8")
    assert "<title>ExtentReports: Nightly</title>" in html
    assert "theme-dark" in html
    assert "cart - test_add" in html
    assert "added &lt;item&gt;" in html
    assert "CHROME" in html


def test_flush_stamps_end_time_without_manual_configuration(tmp_path):
    report = ExtentReports()
    report.attach_reporter(ExtentHtmlReporter(tmp_path / "r.html"))
    test = report.create_test("t")

    report.flush()

    assert test.end_time is not None


def test_flush_keeps_caller_times_with_manual_configuration(tmp_path):
    report = ExtentReports()
    report.attach_reporter(ExtentHtmlReporter(tmp_path / "r.html"))
    report.set_report_uses_manual_configuration(True)
    test = report.create_test("t")

    report.flush()

    assert test.end_time is None


def test_project_template_overrides_package_template(tmp_path, monkeypatch):
    template_dir = tmp_path / "templates" / "extent_report"
    template_dir.mkdir(parents=True)
    (template_dir / "extent_template.html").write_text(
        "custom {{ config.report_name }} {{ summary.total }}", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    html_reporter = ExtentHtmlReporter(tmp_path / "r.html")
    html_reporter.config().set_report_name("Mine")
    report = ExtentReports()
    report.attach_reporter(html_reporter)
    report.create_test("t")

    report.flush()

    assert (tmp_path / "r.html").read_text(encoding="utf-8") == "custom Mine 1"
