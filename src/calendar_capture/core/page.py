"""Page access: the single boundary between capture logic and the host page."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from calendar_capture.core.errors import INVALID_SITE, TAB_ACCESS_FAILED, PageAccessError
from calendar_capture.core.fetch import DEFAULT_UA
from calendar_capture.core.selectors import DETAIL_CLOSE_SEL, EVENT_CARD_SEL

log = logging.getLogger(__name__)

Waiter = Callable[[int], None]

# Copies runtime-only <video> properties into attributes so they survive serialization.
_ANNOTATE_VIDEOS_JS = """
() => {
  for (const v of document.querySelectorAll('video')) {
    if (Number.isFinite(v.duration) && v.duration > 0) {
      v.setAttribute('data-duration', String(v.duration));
    }
    if (v.currentSrc) {
      v.setAttribute('data-current-src', v.currentSrc);
    }
  }
}
"""

# Clicks a fixed list of elements; expanding one must not shift the others.
_CLICK_ALL_JS = """
els => {
  let clicked = 0;
  for (const el of els) {
    try { el.click(); clicked++; } catch (e) {}
  }
  return { found: els.length, clicked };
}
"""

# Visible cards only, so the index lines up with the extractor's card_index.
_OPEN_CARD_JS = """
(els, index) => {
  const visible = els.filter(el => el.offsetWidth > 0 && el.offsetHeight > 0);
  const card = visible[index - 1];
  if (!card) return false;
  card.scrollIntoView({ block: "center" });
  const link = card.closest("a") || card.querySelector("a");
  (link || card).click();
  return true;
}
"""


def sleep_ms(ms: int) -> None:
    if ms > 0:
        time.sleep(ms / 1000)


def no_wait(ms: int) -> None:
    return None


def ensure_target_site(url: Optional[str], host: str) -> None:
    if not url or host not in url:
        raise PageAccessError(f"{INVALID_SITE} (url={url!r})")


class PageSession:
    """
    What the extractor needs from a rendered page.

    Layout side effects (scroll, click) run against the host; reads happen on
    the serialized DOM returned by `content()`.
    """

    def __init__(self, wait: Waiter = sleep_ms) -> None:
        self._wait = wait

    @property
    def url(self) -> str:
        raise NotImplementedError

    def wait(self, ms: int) -> None:
        self._wait(ms)

    def scroll_through(self, selector: str, pause_ms: int) -> int:
        raise NotImplementedError

    def activate(self, selector: str, within: str) -> int:
        raise NotImplementedError

    def content(self) -> str:
        raise NotImplementedError

    def open_card(self, index: int) -> bool:
        """Open the detail view of the `index`-th visible card (1-based). False when there is no such card."""
        raise NotImplementedError

    def close_detail(self) -> None:
        raise NotImplementedError

    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.content(), "lxml")


class StaticPage(PageSession):
    """
    A saved page. Scrolling and clicking only count what would be touched.

    `details` maps a card index to saved detail-view markup; opening that card
    shows the markup in `content()` until the view is closed.
    """

    def __init__(
        self,
        html: str,
        url: str = "",
        wait: Waiter = no_wait,
        details: Optional[Dict[int, str]] = None,
    ) -> None:
        super().__init__(wait)
        self._html = html
        self._url = url
        self._soup = BeautifulSoup(html, "lxml")
        self._details = details or {}
        self._open: Optional[int] = None
        self.opened: List[int] = []

    @classmethod
    def from_file(cls, path: str, url: str = "", wait: Waiter = no_wait) -> "StaticPage":
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            html = f.read()
        if not url:
            # Snapshots written by scripts/capture_snapshot.py start with the source URL.
            first = html.split("\n", 1)[0]
            if first.startswith("<!-- URL: ") and first.endswith("-->"):
                url = first[len("<!-- URL: "):-3].strip()
        return cls(html, url=url, wait=wait)

    @property
    def url(self) -> str:
        return self._url

    def scroll_through(self, selector: str, pause_ms: int) -> int:
        count = len(self._soup.select(selector))
        for _ in range(count):
            self.wait(pause_ms)
        return count

    def activate(self, selector: str, within: str) -> int:
        return len(self._soup.select(f"{within} {selector}"))

    def content(self) -> str:
        if self._open is None:
            return self._html
        detail = self._details[self._open]
        if "</body>" in self._html:
            return self._html.replace("</body>", detail + "</body>", 1)
        return self._html + detail

    def open_card(self, index: int) -> bool:
        if index not in self._details:
            return False
        self._open = index
        self.opened.append(index)
        return True

    def close_detail(self) -> None:
        self._open = None


class PlaywrightPage(PageSession):
    """A live page driven through Playwright's sync API."""

    def __init__(self, page: Page, wait: Waiter = sleep_ms) -> None:
        super().__init__(wait)
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    def scroll_through(self, selector: str, pause_ms: int) -> int:
        try:
            loc = self._page.locator(selector)
            count = loc.count()
            for i in range(count):
                el = loc.nth(i)
                el.evaluate("el => { el.scrollTop = el.scrollHeight; }")
                self.wait(pause_ms)
                el.evaluate("el => { el.scrollTop = 0; }")
            return count
        except PlaywrightError as e:
            raise PageAccessError(f"{TAB_ACCESS_FAILED}: {e}") from e

    def activate(self, selector: str, within: str) -> int:
        try:
            result = self._page.locator(f"{within} {selector}").evaluate_all(_CLICK_ALL_JS)
        except PlaywrightError as e:
            raise PageAccessError(f"{TAB_ACCESS_FAILED}: {e}") from e

        if result["clicked"] < result["found"]:
            log.debug("Expanded %s of %s captions", result["clicked"], result["found"])
        return result["clicked"]

    def open_card(self, index: int) -> bool:
        try:
            return bool(self._page.locator(EVENT_CARD_SEL).evaluate_all(_OPEN_CARD_JS, index))
        except PlaywrightError as e:
            raise PageAccessError(f"{TAB_ACCESS_FAILED}: {e}") from e

    def close_detail(self) -> None:
        try:
            close = self._page.locator(DETAIL_CLOSE_SEL)
            if close.count():
                close.first.click(timeout=2_000)
            else:
                self._page.keyboard.press("Escape")
        except PlaywrightError as e:
            raise PageAccessError(f"{TAB_ACCESS_FAILED}: {e}") from e

    def content(self) -> str:
        try:
            self._page.evaluate(_ANNOTATE_VIDEOS_JS)
            return self._page.content()
        except PlaywrightError as e:
            raise PageAccessError(f"{TAB_ACCESS_FAILED}: {e}") from e


@contextmanager
def open_page(
    url: Optional[str] = None,
    *,
    target_host: str,
    cdp_endpoint: Optional[str] = None,
    storage_state: Optional[str] = None,
    headless: bool = True,
    wait: Waiter = sleep_ms,
) -> Iterator[PlaywrightPage]:
    """
    Yield a PlaywrightPage on the calendar.

    With `cdp_endpoint`, attach to an already running browser and use the first
    tab on `target_host` (the user's browser is left open). Otherwise launch
    Chromium and navigate to `url`.
    """
    with sync_playwright() as p:
        if cdp_endpoint:
            try:
                browser = p.chromium.connect_over_cdp(cdp_endpoint)
            except PlaywrightError as e:
                raise PageAccessError(f"{TAB_ACCESS_FAILED}: {e}") from e
            tabs = [pg for ctx in browser.contexts for pg in ctx.pages]
            match = next((pg for pg in tabs if target_host in (pg.url or "")), None)
            if match is None:
                raise PageAccessError(f"{INVALID_SITE} (no open tab on {target_host})")
            log.info("Attached to tab %s", match.url)
            yield PlaywrightPage(match, wait=wait)
            return

        if not url:
            raise PageAccessError(f"{TAB_ACCESS_FAILED}: no calendar URL configured")

        browser = p.chromium.launch(headless=headless)
        try:
            context = browser.new_context(
                user_agent=DEFAULT_UA,
                storage_state=storage_state,
                viewport={"width": 1600, "height": 1000},
            )
            page = context.new_page()
            page.set_default_timeout(60_000)
            try:
                page.goto(url, wait_until="domcontentloaded")
            except PlaywrightError as e:
                raise PageAccessError(f"{TAB_ACCESS_FAILED}: {e}") from e
            try:
                page.wait_for_load_state("networkidle", timeout=30_000)
            except PlaywrightError:
                # Long-polling pages never go idle; give the calendar a moment instead.
                wait(2_000)
            log.info("Opened %s", page.url)
            yield PlaywrightPage(page, wait=wait)
        finally:
            browser.close()
