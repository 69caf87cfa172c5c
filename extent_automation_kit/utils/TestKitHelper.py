# Result collection and configuration helpers
import logging
import os
import time
import zipfile
from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import Any

import pandas as pd

from .reports.models import (
    FailureDetail,
    TestResult,
    STATUS_FAILED,
    STATUS_PASSED,
    STATUS_SKIPPED,
)


logger = logging.getLogger(__name__)
logger.propagate = True


def get_env(key: str, default: Any = "") -> Any:
    value = os.getenv(key)
    if value is not None:
        value = value.strip()
        return value if value else default
    return default


def current_millis() -> int:
    return int(time.time() * 1000)


def millis_to_datetime(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000)


def load_test_data(path: Path):
    """Load test data rows from CSV or Excel file using pandas.

    Supports multiple file formats and encodings:
    - CSV files with utf-8-sig, latin-1, or utf-8 encoding
    - Excel workbooks (.xlsx)

    Returns a list of dict rows suitable for pytest parametrization.
    """

    if not os.path.exists(path):
        logger.error(f"Data file not found: {path}")
        return []

    try:
        if zipfile.is_zipfile(path):
            df = pd.read_excel(
                path, engine="openpyxl", dtype=str, keep_default_na=False
            )
        else:
            df = None
            for enc in ("utf-8-sig", "latin-1", "utf-8"):
                try:
                    df = pd.read_csv(
                        path, encoding=enc, dtype=str, keep_default_na=False
                    )
                    break
                except UnicodeDecodeError:
                    df = None
            if df is None:
                logger.error(
                    f"Could not load CSV file {path} with any supported encoding"
                )
                return []
        df = df.fillna("")

        return df.to_dict(orient="records")
    except Exception as exc:
        logger.error(f"Error loading data file {path}: {exc}", exc_info=True)
        return []


def get_parameters(item) -> list:
    """Invocation parameters of a parametrized pytest item, in declaration order."""
    callspec = getattr(item, "callspec", None)
    if callspec is None:
        return []
    return [
        value if isinstance(value, (str, int, float, bool)) else str(value)
        for value in callspec.params.values()
    ]


def get_class_name(item) -> str:
    """Simple name of the class declaring the test, or the module name for plain functions."""
    cls = getattr(item, "cls", None)
    if cls is not None:
        return cls.__name__
    module = getattr(item, "module", None)
    if module is not None:
        return module.__name__.rsplit(".", 1)[-1]
    return ""


def get_context_name(item) -> str:
    """Name of the test context containing the item (its test module)."""
    path = getattr(item, "path", None)
    if path is not None:
        return Path(path).stem
    return item.nodeid.split("::", 1)[0]


def build_test_result(item, output=None) -> TestResult:
    """
    Build a TestResult from the phase information stored on the item by
    pytest_runtest_makereport.

    Args:
        item: pytest Item object
        output: Lines logged through the reporter output for this test

    Returns:
        TestResult with status, timestamps, parameters and failure detail
    """
    phase_reports = getattr(item, "_phase_reports", {})
    start_millis = getattr(item, "_start_millis", None) or current_millis()
    end_millis = getattr(item, "_end_millis", None) or current_millis()

    status = STATUS_PASSED
    failure = None
    for when in ("setup", "call", "teardown"):
        report = phase_reports.get(when)
        if report is None:
            continue
        if report.failed:
            status = STATUS_FAILED
            failure = FailureDetail(
                error=str(report.longrepr) if report.longrepr else "No error details available",
                screenshot_base64=getattr(item, "_failure_screenshot", None),
            )
            break
        if report.skipped and status == STATUS_PASSED:
            status = STATUS_SKIPPED

    return TestResult(
        name=item.name,
        context_name=get_context_name(item),
        class_name=get_class_name(item),
        status=status,
        start_millis=start_millis,
        end_millis=end_millis,
        parameters=get_parameters(item),
        output=list(output or []),
        failure=failure,
    )


# Flatten if results is a list of lists or dicts
def flatten_results(res, cfg):
    """Flatten and aggregate test results from workers."""
    if cfg is None:
        return
    if isinstance(res, dict):
        cfg._test_results_from_workers.append(res)
    elif isinstance(res, list):
        for x in res:
            flatten_results(x, cfg)


def aggregate_test_results(config):
    """
    Aggregate test results from master process and xdist workers.

    Returns:
        List of TestResult objects
    """
    results = []

    for result in getattr(config, "test_results_summary", None) or []:
        if isinstance(result, TestResult):
            results.append(result)
        elif isinstance(result, dict):
            results.append(TestResult.from_dict(result))

    for entry in getattr(config, "_test_results_from_workers", None) or []:
        if isinstance(entry, dict):
            results.append(TestResult.from_dict(entry))

    return results


def aggregate_runner_output(config):
    """Run-wide report_log lines of this process followed by those of the xdist workers."""
    reporter_output = getattr(config, "_reporter_output", None)
    output = reporter_output.get_output() if reporter_output is not None else []
    output.extend(getattr(config, "_runner_output_from_workers", None) or [])
    return output


def count_statuses(results):
    return {
        "total": len(results),
        "passed": sum(1 for r in results if r.status == STATUS_PASSED),
        "failed": sum(1 for r in results if r.status == STATUS_FAILED),
        "skipped": sum(1 for r in results if r.status == STATUS_SKIPPED),
    }


def get_version():
    try:
        return metadata.version("extent-automation-kit")
    except metadata.PackageNotFoundError:
        return "0.0.0"
