# Test result records consumed by the report generator
from dataclasses import dataclass, field, asdict
from typing import Any, Optional


STATUS_PASSED = "PASSED"
STATUS_FAILED = "FAILED"
STATUS_SKIPPED = "SKIPPED"


@dataclass
class XmlSuite:
    """Descriptor of an executed suite (only the name is used for reporting)."""

    name: str


@dataclass
class FailureDetail:
    """Failure payload of a result: the error text and an optional screenshot."""

    error: str
    screenshot_base64: Optional[str] = None


@dataclass
class TestResult:
    """
    One terminal test result.

    Attributes:
        name: Test name (pytest item name, including parametrization id)
        context_name: Name of the containing test context (test module)
        class_name: Simple name of the class declaring the test function
        status: PASSED, FAILED or SKIPPED
        start_millis: Start timestamp in epoch milliseconds
        end_millis: End timestamp in epoch milliseconds
        parameters: Invocation parameters, in declaration order
        output: Console lines logged for this result, in capture order
        failure: Failure payload when the test failed
    """

    __test__ = False

    name: str
    context_name: str
    class_name: str
    status: str
    start_millis: int
    end_millis: int
    parameters: list = field(default_factory=list)
    output: list = field(default_factory=list)
    failure: Optional[FailureDetail] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TestResult":
        failure = data.get("failure")
        if isinstance(failure, dict):
            failure = FailureDetail(**failure)
        return cls(
            name=data["name"],
            context_name=data.get("context_name", ""),
            class_name=data.get("class_name", ""),
            status=data.get("status", STATUS_PASSED),
            start_millis=int(data.get("start_millis", 0)),
            end_millis=int(data.get("end_millis", 0)),
            parameters=list(data.get("parameters") or []),
            output=list(data.get("output") or []),
            failure=failure,
        )


@dataclass
class TestContextResult:
    """Results of one test context partitioned into outcome buckets."""

    __test__ = False

    name: str
    failed: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    passed: list = field(default_factory=list)

    def add(self, result: TestResult) -> None:
        if result.status == STATUS_FAILED:
            self.failed.append(result)
        elif result.status == STATUS_SKIPPED:
            self.skipped.append(result)
        else:
            self.passed.append(result)


@dataclass
class SuiteResult:
    """Results of one suite keyed by test context name."""

    name: str
    results: dict = field(default_factory=dict)

    def add(self, result: TestResult) -> None:
        context = self.results.get(result.context_name)
        if context is None:
            context = TestContextResult(name=result.context_name)
            self.results[result.context_name] = context
        context.add(result)

    @classmethod
    def from_results(cls, name: str, results: Any) -> "SuiteResult":
        suite = cls(name=name)
        for result in results:
            suite.add(result)
        return suite
