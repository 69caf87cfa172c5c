"""Browser session management: per-thread WebDriver handles and the mitmproxy process."""
