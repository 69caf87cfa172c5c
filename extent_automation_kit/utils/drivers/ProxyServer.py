"""
Local mitmproxy (mitmdump) process used to intercept browser traffic.
"""
from __future__ import annotations

import logging
import socket
import subprocess
import tempfile
import time
from pathlib import Path

import psutil

from ..TestKitHelper import get_env


logger = logging.getLogger(__name__)
logger.propagate = True

PROXY_HOST = "127.0.0.1"
MITMDUMP_BINARY = "mitmdump"


class ProxyStartError(RuntimeError):
    """Raised when the proxy process cannot be started."""


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((PROXY_HOST, 0))
        return sock.getsockname()[1]


def terminate_process_tree(pid: int, timeout: float = 2) -> int:
    """Terminate a process and its children, killing whatever survives the timeout."""
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return 0

    try:
        processes = parent.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        processes = []
    processes.append(parent)

    for proc in processes:
        try:
            proc.terminate()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            pass
    gone, alive = psutil.wait_procs(processes, timeout=timeout)
    count = len(gone)
    for proc in alive:
        try:
            proc.kill()
            count += 1
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            pass
    return count


class ProxyServer:
    """
    Handle on a mitmdump process listening on 127.0.0.1.

    Args:
        port: Listen port; PROXY_PORT or a free port when not given
        flows_file: Optional file mitmdump writes captured flows to
        startup_wait: Seconds to wait before checking the process is alive
    """

    def __init__(self, port: int | None = None, flows_file: str | Path | None = None,
                 startup_wait: float | None = None):
        self._requested_port = port
        self.port: int | None = None
        self.flows_file = Path(flows_file) if flows_file else None
        self.startup_wait = (
            startup_wait
            if startup_wait is not None
            else float(get_env("PROXY_STARTUP_WAIT", "1"))
        )
        self.process: subprocess.Popen | None = None
        self._stderr_log = None
        self._stopped = False

    @property
    def address(self) -> str:
        return f"{PROXY_HOST}:{self.port}"

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def _command(self) -> list[str]:
        command = [
            MITMDUMP_BINARY,
            "--listen-host", PROXY_HOST,
            "--listen-port", str(self.port),
            "--ssl-insecure",
            "--quiet",
        ]
        if self.flows_file:
            command.extend(["-w", str(self.flows_file)])
        return command

    def start(self) -> "ProxyServer":
        if self.is_running:
            return self

        port = self._requested_port or get_env("PROXY_PORT", None)
        self.port = int(port) if port else find_free_port()
        if self.flows_file:
            self.flows_file.parent.mkdir(parents=True, exist_ok=True)

        # stdout is discarded; stderr is buffered in a temp file and read only on a failed start
        self._stderr_log = tempfile.TemporaryFile()
        try:
            self.process = subprocess.Popen(
                self._command(),
                stdout=subprocess.DEVNULL,
                stderr=self._stderr_log,
            )
        except FileNotFoundError as e:
            self._close_stderr_log()
            raise ProxyStartError(
                "mitmdump not found. Install with: pip install mitmproxy"
            ) from e

        time.sleep(self.startup_wait)

        if self.process.poll() is not None:
            self._stderr_log.seek(0)
            stderr = self._stderr_log.read().decode(errors="replace")
            self._close_stderr_log()
            self.process = None
            raise ProxyStartError(f"mitmdump failed to start on port {self.port}: {stderr}")

        self._stopped = False
        logger.info(f"Proxy started on {self.address} (pid {self.process.pid})")
        return self

    def _close_stderr_log(self) -> None:
        if self._stderr_log is not None:
            self._stderr_log.close()
            self._stderr_log = None

    def stop(self) -> None:
        if self._stopped or self.process is None:
            self._stopped = True
            return
        pid = self.process.pid
        terminated = terminate_process_tree(pid)
        self._close_stderr_log()
        self.process = None
        self._stopped = True
        logger.info(f"Proxy on {self.address} stopped ({terminated} process(es) terminated)")
