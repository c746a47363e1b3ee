"""Headless-browser helpers with anti-detection measures.

``StealthBrowser`` owns one Playwright browser for a whole run and is used
from the main thread (search result pages).  ``stealth_context`` is the
self-contained variant for worker threads: it starts Playwright, yields a
context and tears everything down again.

Playwright is imported lazily so the rest of the package (and the test
suite) works without a browser installed.
"""

from __future__ import annotations

import random
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

# ---------------------------------------------------------------------------
# Fingerprint pools
# ---------------------------------------------------------------------------
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
]

VIEWPORTS = [
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
]

TIMEZONES = ["America/New_York", "America/Chicago", "America/Los_Angeles", "America/Denver"]

LOCALES = ["en-US", "en-GB", "en-CA"]

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]

BROWSER_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}

STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', {get: () => false});
if (!window.chrome) {
    window.chrome = {runtime: {}, loadTimes: function () {}, csi: function () {}, app: {}};
}
if (window.navigator.permissions) {
    const originalQuery = window.navigator.permissions.query;
    window.navigator.permissions.query = (parameters) => (
        parameters.name === 'notifications'
            ? Promise.resolve({state: Notification.permission})
            : originalQuery(parameters)
    );
}
Object.defineProperty(navigator, 'plugins', {get: () => [1, 2, 3, 4, 5]});
Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});
Object.defineProperty(navigator, 'platform', {get: () => 'Win32'});
Object.defineProperty(navigator, 'connection', {
    get: () => ({effectiveType: '4g', rtt: 50, downlink: 10, saveData: false})
});
"""


@dataclass(frozen=True)
class Fingerprint:
    user_agent: str
    viewport: dict
    timezone: str
    locale: str


def random_fingerprint() -> Fingerprint:
    """Pick one entry from each fingerprint pool."""
    return Fingerprint(
        user_agent=random.choice(USER_AGENTS),
        viewport=random.choice(VIEWPORTS),
        timezone=random.choice(TIMEZONES),
        locale=random.choice(LOCALES),
    )


def browser_headers(user_agent: str | None = None) -> dict[str, str]:
    """Return browser-like request headers for plain HTTP clients."""
    headers = dict(BROWSER_HEADERS)
    headers["User-Agent"] = user_agent or random.choice(USER_AGENTS)
    return headers


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------

def create_stealth_context(browser: Any, fingerprint: Fingerprint | None = None) -> Any:
    """Open a new context on *browser* with a randomised fingerprint."""
    fp = fingerprint or random_fingerprint()
    context = browser.new_context(
        user_agent=fp.user_agent,
        viewport=fp.viewport,
        locale=fp.locale,
        timezone_id=fp.timezone,
        permissions=["geolocation"],
        java_script_enabled=True,
        bypass_csp=True,
        extra_http_headers=BROWSER_HEADERS,
    )
    context.add_init_script(STEALTH_JS)
    return context


def humanize(page: Any) -> None:
    """Pause briefly and nudge the mouse, like a person would."""
    page.wait_for_timeout(500 + random.random() * 1000)
    page.mouse.move(100 + random.random() * 200, 100 + random.random() * 200)


@contextmanager
def stealth_context(headless: bool = True) -> Iterator[Any]:
    """Yield a throw-away stealth context owned by the calling thread."""
    from playwright.sync_api import sync_playwright  # noqa: PLC0415

    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=headless, args=LAUNCH_ARGS)
        try:
            context = create_stealth_context(browser)
            try:
                yield context
            finally:
                context.close()
        finally:
            browser.close()


class StealthBrowser:
    """One stealth browser + context shared across a run.

    Usage::

        with StealthBrowser() as browser:
            html = browser.get_html("https://html.duckduckgo.com/html/?q=x")
    """

    def __init__(self, headless: bool = True, timeout_ms: int = 30_000) -> None:
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._pw: Any = None
        self.browser: Any = None
        self.context: Any = None

    def __enter__(self) -> "StealthBrowser":
        from playwright.sync_api import sync_playwright  # noqa: PLC0415

        self._pw = sync_playwright().start()
        self.browser = self._pw.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
        self.context = create_stealth_context(self.browser)
        print(f"[browser] chromium ({'headless' if self.headless else 'headed'}) ready")
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        for obj in (self.context, self.browser):
            if obj is None:
                continue
            try:
                obj.close()
            except Exception as exc:
                print(f"[browser] close failed: {exc}")
        self.context = self.browser = None
        if self._pw is not None:
            self._pw.stop()
            self._pw = None

    def get_html(self, url: str, wait_selector: str | None = None) -> str:
        """Navigate a fresh page to *url* and return the rendered HTML."""
        from playwright.sync_api import TimeoutError as PlaywrightTimeout  # noqa: PLC0415

        page = self.context.new_page()
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
            if wait_selector:
                try:
                    page.wait_for_selector(wait_selector, timeout=10_000)
                except PlaywrightTimeout:
                    # Results may still be present under another selector.
                    pass
            humanize(page)
            return page.content()
        finally:
            page.close()
