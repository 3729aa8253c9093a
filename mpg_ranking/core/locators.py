"""
Find-first-matching-selector helpers shared by login and cookie handling
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from playwright.async_api import Page, Frame, ElementHandle

logger = logging.getLogger(__name__)

@dataclass
class LocatorMatch:
    """Where a selector matched"""
    frame: Frame
    selector: str
    element: ElementHandle

def page_frames(page: Page) -> List[Frame]:
    """Main document first, then every embedded frame (consent iframes included)"""
    main = page.main_frame
    return [main] + [frame for frame in page.frames if frame is not main]

async def _visible_match(frame: Frame, selector: str) -> Optional[ElementHandle]:
    try:
        element = await frame.query_selector(selector)
        if element and await element.is_visible():
            return element
    except Exception as e:
        # Detached frames and invalid selectors for a given engine both land here
        logger.debug(f"Selector {selector} failed in frame {frame.url}: {e}")
    return None

async def find_first(page: Page, selectors: Sequence[str], timeout_ms: int = 5000,
                     poll_ms: int = 250, frames: Optional[Sequence[Frame]] = None) -> Optional[LocatorMatch]:
    """
    Return the first visible element matching any selector, in any frame

    Selectors are tried in order inside each frame (main document first) and the
    whole scan is repeated until timeout_ms elapses.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000

    while True:
        for frame in (frames if frames is not None else page_frames(page)):
            for selector in selectors:
                element = await _visible_match(frame, selector)
                if element:
                    logger.debug(f"Matched {selector} in frame {frame.url}")
                    return LocatorMatch(frame=frame, selector=selector, element=element)

        if loop.time() >= deadline:
            return None
        await asyncio.sleep(poll_ms / 1000)

async def click_first(page: Page, selectors: Sequence[str], timeout_ms: int = 2000,
                      click_timeout_ms: int = 3000) -> Optional[str]:
    """Click the first visible match; returns the selector clicked, None if nothing matched"""
    match = await find_first(page, selectors, timeout_ms=timeout_ms)
    if not match:
        return None
    try:
        await match.element.click(delay=50, timeout=click_timeout_ms)
        return match.selector
    except Exception as e:
        logger.debug(f"Click on {match.selector} failed: {e}")
        return None

async def fill_first(frame: Frame, selectors: Sequence[str], value: str) -> Optional[str]:
    """Fill the first visible input of a frame matching any selector"""
    for selector in selectors:
        element = await _visible_match(frame, selector)
        if element:
            await element.fill(value)
            return selector
    return None
