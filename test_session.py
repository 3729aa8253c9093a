"""
Tests for login handling, driven with fake pages and frames
"""
import asyncio

import pytest

from mpg_ranking.config.enums import SessionStatus
from mpg_ranking.config.settings import load_config
from mpg_ranking.core import session as session_module
from mpg_ranking.core.browser import is_login_or_home, matches_post_login
from mpg_ranking.core.errors import LoginError
from mpg_ranking.core.session import SessionEstablisher

CREDENTIALS = {"MPG_EMAIL": "coach@example.com", "MPG_PASSWORD": "s3cret-pass"}
LOGIN_URL = "https://mpg.football/login"
DASHBOARD_URL = "https://mpg.football/dashboard"
FAST_TIMEOUTS = {"selector_ms": 50, "click_ms": 50, "login_ms": 50, "network_idle_ms": 50}


class FakeElement:
    def __init__(self, visible=True, on_click=None):
        self.visible = visible
        self.on_click = on_click
        self.value = None
        self.clicks = 0

    async def is_visible(self):
        return self.visible

    async def fill(self, value):
        self.value = value

    async def click(self, delay=None, timeout=None):
        self.clicks += 1
        if self.on_click:
            self.on_click()


class FakeFrame:
    def __init__(self, url, elements=None):
        self.url = url
        self.elements = elements or {}
        self.pressed = []

    async def query_selector(self, selector):
        return self.elements.get(selector)

    async def press(self, selector, key):
        self.pressed.append((selector, key))


class FakePage:
    def __init__(self, *frames):
        self.main_frame = frames[0] if frames else FakeFrame("about:blank")
        self.frames = list(frames) or [self.main_frame]
        self.url = "about:blank"

    async def wait_for_url(self, predicate, timeout=None):
        if not predicate(self.url):
            raise TimeoutError(f"still on {self.url}")

    async def wait_for_load_state(self, state=None, timeout=None):
        return None

    async def wait_for_timeout(self, timeout):
        return None


@pytest.fixture
def loads(monkeypatch):
    """Record navigations; URLs listed in 'broken' raise"""
    state = {"visits": [], "broken": set()}

    async def fake_load_page(page, url, **kwargs):
        state["visits"].append(url)
        if url in state["broken"]:
            raise RuntimeError(f"cannot reach {url}")
        page.url = url
        return page

    async def fake_dismiss(page, timeout=1500):
        return False

    monkeypatch.setattr(session_module, "load_page", fake_load_page)
    monkeypatch.setattr(session_module, "dismiss_cookie_banner", fake_dismiss)
    return state


def make_config(**overrides):
    values = {"login_urls": [LOGIN_URL], "timeouts": FAST_TIMEOUTS}
    values.update(overrides)
    return load_config(env=CREDENTIALS, overrides=values)


def login_page(redirect_to=DASHBOARD_URL, with_submit=True):
    """Main document plus a consent-style iframe holding the login form"""
    main = FakeFrame(LOGIN_URL)
    page = FakePage(main)

    def submit():
        if redirect_to:
            page.url = redirect_to

    form = {
        'input[type="email"]': FakeElement(),
        'input[type="password"]': FakeElement(),
    }
    if with_submit:
        form['button[type="submit"]'] = FakeElement(on_click=submit)
    iframe = FakeFrame("https://auth.mpg.football/embed", form)
    page.frames.append(iframe)
    return page, iframe


def test_login_form_inside_iframe(loads):
    page, iframe = login_page()
    establisher = SessionEstablisher(make_config())

    status = asyncio.run(establisher.login(page))

    assert status is SessionStatus.AUTHENTICATED
    assert establisher.session.is_guest is False
    assert iframe.elements['input[type="email"]'].value == "coach@example.com"
    assert iframe.elements['input[type="password"]'].value == "s3cret-pass"
    assert iframe.elements['button[type="submit"]'].clicks == 1


def test_enter_pressed_without_submit_button(loads):
    page, iframe = login_page(with_submit=False)

    original_press = iframe.press

    async def press_and_redirect(selector, key):
        await original_press(selector, key)
        page.url = DASHBOARD_URL

    iframe.press = press_and_redirect
    status = asyncio.run(SessionEstablisher(make_config()).login(page))

    assert iframe.pressed == [('input[type="password"]', "Enter")]
    assert status is SessionStatus.AUTHENTICATED


def test_login_not_confirmed(loads):
    page, _ = login_page(redirect_to=None)
    establisher = SessionEstablisher(make_config())

    status = asyncio.run(establisher.login(page))

    assert status is SessionStatus.UNCONFIRMED
    assert establisher.session.is_guest is True


def test_unreachable_candidate_is_skipped(loads):
    broken = "https://mpg.football/broken-login"
    loads["broken"].add(broken)
    page, _ = login_page()
    establisher = SessionEstablisher(make_config(login_urls=[broken, LOGIN_URL]))

    status = asyncio.run(establisher.login(page))

    assert loads["visits"] == [broken, LOGIN_URL]
    assert status is SessionStatus.AUTHENTICATED


def test_no_login_form_is_fatal_when_strict(loads):
    page = FakePage(FakeFrame(LOGIN_URL))
    establisher = SessionEstablisher(make_config())

    with pytest.raises(LoginError, match="No login form"):
        asyncio.run(establisher.login(page))


def test_no_login_form_continues_as_guest_when_lenient(loads):
    page = FakePage(FakeFrame(LOGIN_URL))
    establisher = SessionEstablisher(make_config(strict_login=False))

    status = asyncio.run(establisher.login(page))

    assert status is SessionStatus.UNAUTHENTICATED
    assert establisher.session.is_guest is True
    assert establisher.session.login_attempts == 1


def test_hidden_fields_are_ignored(loads):
    main = FakeFrame(LOGIN_URL, {'input[type="email"]': FakeElement(visible=False)})
    establisher = SessionEstablisher(make_config(strict_login=False))

    status = asyncio.run(establisher.login(FakePage(main)))

    assert status is SessionStatus.UNAUTHENTICATED


@pytest.mark.parametrize("current, target, expected", [
    ("https://mpg.football/login", "https://mpg.football/league/x/ranking/general", True),
    ("https://mpg.football/auth/signin?next=/league", "https://mpg.football/league/x", True),
    ("https://mpg.football/", "https://mpg.football/league/x/ranking/general", True),
    ("https://mpg.football/league/x/ranking/general", "https://mpg.football/league/x/ranking/general", False),
    ("https://mpg.football/", "https://mpg.football/", False),
])
def test_is_login_or_home(current, target, expected):
    assert is_login_or_home(current, target) is expected


@pytest.mark.parametrize("url, expected", [
    ("https://mpg.football/dashboard", True),
    ("https://mpg.football/league/mpg_league_X", True),
    ("https://mpg.football/championships", True),
    ("https://mpg.football/login", False),
    ("https://mpg.football/", False),
])
def test_matches_post_login(url, expected):
    assert matches_post_login(url, r"/(dashboard|league|championships?)") is expected
