import base64
import binascii
import logging
import os
from datetime import datetime
from enum import Enum
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape


logger = logging.getLogger(__name__)
logger.propagate = True

TEMPLATE_DIR_NAME = "extent_report"
TEMPLATE_FILE_NAME = "extent_template.html"


class Status(Enum):
    """Log severities, ordered from least to most severe."""

    INFO = "INFO"
    PASS = "PASS"
    SKIP = "SKIP"
    WARNING = "WARNING"
    ERROR = "ERROR"
    FAIL = "FAIL"

    def __str__(self):
        return self.value

    @property
    def weight(self) -> int:
        return list(Status).index(self)


class Theme(Enum):
    STANDARD = "standard"
    DARK = "dark"


class MediaEntityError(IOError):
    """Raised when a screenshot cannot be turned into an embeddable media entity."""


class MediaEntity:
    def __init__(self, base64_string: str, title: str = ""):
        self.base64_string = base64_string
        self.title = title

    @property
    def data_uri(self) -> str:
        return f"data:image/png;base64,{self.base64_string}"


class MediaEntityBuilder:
    """Builds a media entity from a base64 encoded screen capture."""

    def __init__(self, base64_string: str):
        self._base64_string = base64_string
        self._title = ""

    @classmethod
    def create_screen_capture_from_base64_string(cls, base64_string):
        if not base64_string:
            raise MediaEntityError("Screenshot base64 string is empty")
        cleaned = "".join(str(base64_string).split())
        try:
            decoded = base64.b64decode(cleaned, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MediaEntityError(f"Screenshot is not valid base64: {exc}") from exc
        if not decoded:
            raise MediaEntityError("Screenshot decoded to zero bytes")
        return cls(cleaned)

    def with_title(self, title: str) -> "MediaEntityBuilder":
        self._title = title
        return self

    def build(self) -> MediaEntity:
        return MediaEntity(self._base64_string, self._title)


class Log:
    def __init__(self, status: Status, details: str, media: MediaEntity = None):
        self.status = status
        self.details = details
        self.media = media
        self.timestamp = datetime.now()


class ExtentTest:
    """A report node: one rendered entry corresponding to one test result."""

    __test__ = False

    def __init__(self, name: str):
        self.name = name
        self.categories = []
        self.logs = []
        self.start_time = datetime.now()
        self.end_time = None

    @property
    def status(self) -> Status:
        # Worst severity logged so far; a node without status logs counts as passed
        statuses = [log.status for log in self.logs if log.status is not Status.INFO]
        if not statuses:
            return Status.PASS
        return max(statuses, key=lambda s: s.weight)

    @property
    def media(self):
        return [log.media for log in self.logs if log.media is not None]

    def assign_category(self, *categories):
        for category in categories:
            if category and category not in self.categories:
                self.categories.append(category)
        return self

    def log(self, status: Status, details, media: MediaEntity = None):
        if isinstance(details, BaseException):
            details = f"{type(details).__name__}: {details}"
        self.logs.append(Log(status, str(details), media))
        return self

    def info(self, details):
        return self.log(Status.INFO, details)

    def pass_(self, details):
        return self.log(Status.PASS, details)

    def fail(self, details, media: MediaEntity = None):
        return self.log(Status.FAIL, details, media)

    def skip(self, details):
        return self.log(Status.SKIP, details)


class ReporterConfig:
    def __init__(self):
        self.document_title = "ExtentReports"
        self.report_name = ""
        self.theme = Theme.STANDARD
        self.encoding = "UTF-8"

    def set_document_title(self, title: str):
        self.document_title = title

    def set_report_name(self, name: str):
        self.report_name = name

    def set_theme(self, theme: Theme):
        self.theme = theme

    def set_encoding(self, encoding: str):
        self.encoding = encoding


def get_html_template():
    """
    Returns the Jinja2 template object for the extent report.
    Checks for a source template in the project working directory first, then falls back to the package template.
    """
    source_template_dir = Path.cwd() / "templates" / TEMPLATE_DIR_NAME
    source_template_file = source_template_dir / TEMPLATE_FILE_NAME

    if source_template_file.exists():
        template_dir = str(source_template_dir)
    else:
        package_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
        template_dir = os.path.join(package_root, "templates", TEMPLATE_DIR_NAME)

    env = Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(["html"]),
    )
    return env.get_template(TEMPLATE_FILE_NAME)


def format_duration(start_time, end_time):
    if start_time is None or end_time is None:
        return "-"
    total_seconds = max(0, int((end_time - start_time).total_seconds()))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02}:{minutes:02}:{seconds:02}"


class ExtentHtmlReporter:
    """Renders an ExtentReports instance into a single HTML file."""

    def __init__(self, file_path):
        self.file_path = Path(file_path)
        self._config = ReporterConfig()

    def config(self) -> ReporterConfig:
        return self._config

    def flush(self, report: "ExtentReports") -> Path:
        tests = report.tests
        status_counts = {status.value: 0 for status in (Status.PASS, Status.FAIL, Status.SKIP)}
        for test in tests:
            status = test.status
            if status in (Status.ERROR, Status.WARNING):
                status = Status.FAIL
            if status.value in status_counts:
                status_counts[status.value] += 1

        start_times = [t.start_time for t in tests if t.start_time is not None]
        end_times = [t.end_time for t in tests if t.end_time is not None]
        run_start = min(start_times) if start_times else report.created
        run_end = max(end_times) if end_times else datetime.now()

        template = get_html_template()
        template.globals["format_duration"] = format_duration

        html_content = template.render(
            config=self._config,
            tests=tests,
            system_info=report.system_info,
            runner_output=report.test_runner_output,
            summary={
                "total": len(tests),
                "passed": status_counts["PASS"],
                "failed": status_counts["FAIL"],
                "skipped": status_counts["SKIP"],
                "start_time": run_start,
                "end_time": run_end,
                "duration": format_duration(run_start, run_end),
                "generated": datetime.now().strftime("%m-%d-%Y %I:%M:%S %p"),
            },
        )

        with open(self.file_path, "w", encoding=self._config.encoding) as f:
            f.write(html_content)

        logger.info(f"Extent report written to {self.file_path}")
        return self.file_path


class ExtentReports:
    """
    In-memory report model. Nodes are created by the caller and nothing is
    written to disk until flush() is called.
    """

    def __init__(self):
        self.reporters = []
        self.tests = []
        self.system_info = {}
        self.test_runner_output = []
        self.uses_manual_configuration = False
        self.created = datetime.now()

    def attach_reporter(self, *reporters):
        self.reporters.extend(reporters)

    def set_report_uses_manual_configuration(self, value: bool):
        self.uses_manual_configuration = bool(value)

    def set_system_info(self, key: str, value: str):
        self.system_info[key] = value

    def set_test_runner_output(self, log):
        self.test_runner_output.append(str(log))

    def create_test(self, name: str) -> ExtentTest:
        test = ExtentTest(name)
        self.tests.append(test)
        return test

    def flush(self):
        if not self.uses_manual_configuration:
            now = datetime.now()
            for test in self.tests:
                if test.end_time is None:
                    test.end_time = now
        for reporter in self.reporters:
            reporter.flush(self)
