import logging
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .codec import encode
from .config import (
    APP_URL,
    SHARE_PARAM,
    SHARE_WAIT,
    SHORTENER_BACKOFF,
    SHORTENER_RETRIES,
    SHORTENER_TIMEOUT,
    SHORTENER_URL,
)
from .record import AcademicRecord

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="shortener")


@dataclass
class ShareLink:
    url: str
    shortened: bool
    error: Optional[str] = None


def build_share_url(record: AcademicRecord, base_url: str = APP_URL) -> str:
    token = encode(record)
    if not token:
        return base_url
    sep = "&" if "?" in base_url else "?"
    return f"{base_url}{sep}{urlencode({SHARE_PARAM: token})}"


# --- SESSION SETUP ---
def create_retry_session() -> requests.Session:
    session = requests.Session()
    retries = Retry(
        total=SHORTENER_RETRIES,
        backoff_factor=SHORTENER_BACKOFF,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def shorten_url(long_url: str, session: Optional[requests.Session] = None) -> ShareLink:
    """
    Ask the shortening service for a short alias of `long_url`.

    Never raises: on any failure the long URL comes back with
    `shortened=False` and the reason in `error`. A session built here is
    closed before returning; a caller's session is left open.
    """
    if session is None:
        with create_retry_session() as owned:
            return shorten_url(long_url, session=owned)
    try:
        resp = session.get(
            SHORTENER_URL,
            params={"format": "json", "url": long_url},
            timeout=SHORTENER_TIMEOUT,
        )
        resp.raise_for_status()
        data = resp.json()
        short = data.get("shorturl") if isinstance(data, dict) else None
        if not isinstance(short, str) or not short:
            raise ValueError("response has no shorturl field")
        return ShareLink(url=short, shortened=True)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Link shortening failed, using long URL: %s", e)
        return ShareLink(url=long_url, shortened=False, error=str(e))


def shorten_url_async(long_url: str, session: Optional[requests.Session] = None) -> "Future[ShareLink]":
    return _executor.submit(shorten_url, long_url, session)


def share_link(long_url: str, wait: float = SHARE_WAIT,
               session: Optional[requests.Session] = None) -> ShareLink:
    """Short link if the service answers within `wait` seconds, else the long one."""
    future = shorten_url_async(long_url, session)
    try:
        return future.result(timeout=wait)
    except futures.TimeoutError:
        future.cancel()
        logger.warning("Link shortening took longer than %ss, using long URL", wait)
        return ShareLink(url=long_url, shortened=False, error=f"timed out after {wait}s")
