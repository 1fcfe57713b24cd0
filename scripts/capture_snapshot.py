from __future__ import annotations

import argparse
import os
import sys

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from calendar_capture.core.fetch import DEFAULT_UA
from calendar_capture.core.page import PlaywrightPage
from calendar_capture.core.selectors import DAY_COLUMN_SEL, EVENT_CARD_SEL, MORE_BUTTON_SEL

CALENDAR_URL_DEFAULT = "https://app.blaze.ai/calendar"


def main() -> int:
    ap = argparse.ArgumentParser(description="Save a Blaze calendar page for offline capture runs")
    ap.add_argument("--url", default=CALENDAR_URL_DEFAULT, help="Calendar URL")
    ap.add_argument("--out", default="out/calendar.html", help="Snapshot output path")
    ap.add_argument("--storage-state", default="out/blaze_state.json", help="Login storage state path")
    ap.add_argument("--login", action="store_true", help="Open a visible browser, log in, then save the storage state")
    ap.add_argument("--headless", action="store_true", help="Run headless")
    ap.add_argument("--timeout-ms", type=int, default=60000, help="Page timeout in ms")
    args = ap.parse_args()

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=args.headless and not args.login)
        state = args.storage_state if (not args.login and os.path.exists(args.storage_state)) else None
        context = browser.new_context(
            user_agent=DEFAULT_UA,
            storage_state=state,
            viewport={"width": 1600, "height": 1000},
        )
        page = context.new_page()
        page.set_default_timeout(args.timeout_ms)
        page.goto(args.url, wait_until="domcontentloaded")

        if args.login:
            input("Log in to Blaze in the opened browser, then press Enter here...")
            os.makedirs(os.path.dirname(args.storage_state) or ".", exist_ok=True)
            context.storage_state(path=args.storage_state)
            browser.close()
            print(f"Wrote: {args.storage_state}")
            return 0

        try:
            page.wait_for_selector(EVENT_CARD_SEL, timeout=args.timeout_ms)
        except PlaywrightError:
            print("No event cards appeared; saving the page anyway", file=sys.stderr)

        live = PlaywrightPage(page)
        live.scroll_through(DAY_COLUMN_SEL, 50)
        if live.activate(MORE_BUTTON_SEL, within=EVENT_CARD_SEL):
            live.wait(200)

        html = live.content()
        url = page.url
        browser.close()

    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        f.write(f"<!-- URL: {url} -->\n")
        f.write(html)
    print(f"Wrote: {args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
