"""
Browser session handle owned by a single worker thread.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading

from selenium import webdriver
from selenium.webdriver.common.proxy import Proxy, ProxyType

from ..TestKitHelper import get_env
from .ProxyServer import ProxyServer


logger = logging.getLogger(__name__)
logger.propagate = True

SUPPORTED_BROWSERS = ("chrome", "firefox", "edge")


def get_browser() -> str:
    browser = get_env("BROWSER", "chrome").lower()
    if browser not in SUPPORTED_BROWSERS:
        raise ValueError(
            f"Unsupported browser '{browser}', expected one of {', '.join(SUPPORTED_BROWSERS)}"
        )
    return browser


def build_options(browser: str, proxy_address: str | None = None, profile_dir: str | None = None):
    """
    Build Selenium options for the browser.

    Environment Variables:
    - HEADLESS (default: "N"): "Y" runs the browser without a window
    """
    headless = get_env("HEADLESS", "N").upper() == "Y"

    if browser == "firefox":
        options = webdriver.FirefoxOptions()
        if headless:
            options.add_argument("-headless")
        if proxy_address:
            options.proxy = Proxy(
                {
                    "proxyType": ProxyType.MANUAL,
                    "httpProxy": proxy_address,
                    "sslProxy": proxy_address,
                }
            )
            options.accept_insecure_certs = True
        return options

    options = webdriver.EdgeOptions() if browser == "edge" else webdriver.ChromeOptions()
    if profile_dir:
        options.add_argument(f"--user-data-dir={profile_dir}")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    if headless:
        options.add_argument("--headless=new")
    if proxy_address:
        options.add_argument(f"--proxy-server=http://{proxy_address}")
        options.add_argument("--ignore-certificate-errors")
    return options


def create_web_driver(browser: str, options):
    if browser == "firefox":
        return webdriver.Firefox(options=options)
    if browser == "edge":
        return webdriver.Edge(options=options)
    return webdriver.Chrome(options=options)


class WebDriverThread:
    """
    One browser session plus optional proxy instrumentation.

    The plain driver, the proxy-enabled driver and the proxy are each created
    on first access and released together by quit_driver().
    """

    def __init__(self, browser: str | None = None, proxy_factory=ProxyServer):
        self.browser = browser or get_browser()
        self.owner = threading.current_thread().name
        self._proxy_factory = proxy_factory
        self._driver = None
        self._proxy_enabled_driver = None
        self._proxy = None
        self._profile_dirs: list[str] = []
        self.closed = False

    def __repr__(self):
        return f"<WebDriverThread browser={self.browser} owner={self.owner} closed={self.closed}>"

    @property
    def has_driver(self) -> bool:
        return self._driver is not None

    def _new_driver(self, proxy_address: str | None = None):
        if self.closed:
            raise RuntimeError(f"Browser session of thread {self.owner} is already closed")
        profile_dir = None
        if self.browser != "firefox":
            profile_dir = tempfile.mkdtemp(prefix=f"{self.browser}_profile_")
            self._profile_dirs.append(profile_dir)
        options = build_options(self.browser, proxy_address, profile_dir)
        logger.info(
            f"Starting {self.browser} session for thread {self.owner}"
            + (f" through proxy {proxy_address}" if proxy_address else "")
        )
        return create_web_driver(self.browser, options)

    def get_driver(self):
        if self._driver is None:
            self._driver = self._new_driver()
        return self._driver

    def get_proxy(self):
        if self.closed:
            raise RuntimeError(f"Browser session of thread {self.owner} is already closed")
        if self._proxy is None:
            flows_dir = get_env("PROXY_FLOWS_DIR", None)
            flows_file = (
                os.path.join(flows_dir, f"flows_{self.owner}.mitm") if flows_dir else None
            )
            self._proxy = self._proxy_factory(flows_file=flows_file)
        if not self._proxy.is_running:
            self._proxy.start()
        return self._proxy

    def get_proxy_enabled_driver(self):
        if self._proxy_enabled_driver is None:
            proxy = self.get_proxy()
            self._proxy_enabled_driver = self._new_driver(proxy.address)
        return self._proxy_enabled_driver

    def quit_driver(self):
        """Release the browsers and the proxy; later calls do nothing."""
        if self.closed:
            return
        self.closed = True

        for name, driver in (
            ("driver", self._driver),
            ("proxy enabled driver", self._proxy_enabled_driver),
        ):
            if driver is None:
                continue
            try:
                driver.quit()
            except Exception as e:
                logger.warning(f"Failed to quit {name} of thread {self.owner}: {e}")

        if self._proxy is not None:
            try:
                self._proxy.stop()
            except Exception as e:
                logger.warning(f"Failed to stop proxy of thread {self.owner}: {e}")

        for profile_dir in self._profile_dirs:
            shutil.rmtree(profile_dir, ignore_errors=True)

        self._driver = None
        self._proxy_enabled_driver = None
        self._proxy = None
        self._profile_dirs = []
