# Lines logged by tests, kept per test and for the whole run
import logging
import threading


logger = logging.getLogger(__name__)
logger.propagate = True


class ReporterOutput:
    def __init__(self):
        self._lock = threading.Lock()
        self._local = threading.local()
        self._runner_output = []
        self._test_output = {}

    def begin_test(self, test_id: str) -> None:
        self._local.test_id = test_id
        with self._lock:
            self._test_output.setdefault(test_id, [])

    def end_test(self) -> list:
        """Close the calling thread's test and hand back its lines; they are not kept afterwards."""
        test_id = getattr(self._local, "test_id", None)
        self._local.test_id = None
        if test_id is None:
            return []
        with self._lock:
            return self._test_output.pop(test_id, [])

    def log(self, message) -> None:
        """Record a line against the running test (if any) and the run output."""
        line = str(message)
        test_id = getattr(self._local, "test_id", None)
        with self._lock:
            self._runner_output.append(line)
            if test_id is not None:
                self._test_output.setdefault(test_id, []).append(line)
        logger.info(line)

    def get_output(self, test_id: str = None) -> list:
        with self._lock:
            if test_id is None:
                return list(self._runner_output)
            return list(self._test_output.get(test_id, []))
