"""Selenium-based page loading.

`render_url()` starts a temporary headless Chrome via `webdriver-manager`,
loads the page, waits for client-side content to settle and returns the
rendered source. Marketplace pages fill in prices, photos and spec
blocks after the initial load, so the settle wait matters.
"""
import logging
import time
from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.chrome.options import Options
from webdriver_manager.chrome import ChromeDriverManager

from ..config import SETTLE_DELAY

logger = logging.getLogger(__name__)


def _make_options(headless: bool = True, width: int = 1200, height: int = 800) -> Options:
    opts = Options()
    if headless:
        opts.add_argument('--headless=new')
    opts.add_argument(f'--window-size={width},{height}')
    opts.add_argument('--no-sandbox')
    opts.add_argument('--disable-dev-shm-usage')
    opts.add_argument('--disable-gpu')
    return opts


def render_url(url: str, wait: float = SETTLE_DELAY, headless: bool = True, timeout: int = 30) -> str:
    """Load `url` in a temporary Chrome instance and return final page source.

    `wait` is the settle delay in seconds after the load event.
    """
    opts = _make_options(headless=headless)
    service = Service(ChromeDriverManager().install())
    driver = webdriver.Chrome(service=service, options=opts)
    try:
        driver.set_page_load_timeout(timeout)
        driver.get(url)
        if wait:
            time.sleep(wait)
        return driver.page_source
    finally:
        try:
            driver.quit()
        except WebDriverException as e:
            logger.debug('Chrome did not quit cleanly: %s', e)
