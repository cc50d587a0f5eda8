"""
Fetch module for the Course Watcher pipeline.

This module handles fetching catalog pages over HTTP with proper error
handling. Failures are reported as FetchResult values, never raised, so a
single broken page cannot abort a crawl.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter

from course_watcher.config import DEFAULT_PARALLELISM, DEFAULT_TIMEOUT
from course_watcher.rate_limiter import DomainRateLimiter
from course_watcher.utils import get_logger, normalize_url


# Module logger
logger = get_logger("fetch")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

MAX_REDIRECTS = 10
REDIRECT_STATUSES = (301, 302, 303, 307, 308)


@dataclass
class FetchResult:
    """
    Represents the result of fetching a single URL.

    Attributes:
        source_url: The URL that was fetched.
        html_content: Decoded body if successful, None otherwise.
        success: Whether the fetch was successful.
        error_message: Error description if fetch failed, None otherwise.
        status_code: HTTP status code if request was made, None otherwise.
        content_type: Value of the Content-Type header, empty if unknown.
        final_url: URL the content was served from after redirects.
    """
    source_url: str
    html_content: Optional[str]
    success: bool
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    content_type: str = ""
    final_url: Optional[str] = None

    @property
    def is_html(self) -> bool:
        # Servers that omit the header are assumed to serve HTML
        return not self.content_type or "html" in self.content_type.lower()


def create_session(pool_size: int = DEFAULT_PARALLELISM) -> requests.Session:
    """
    Create a requests session for crawling.

    The connection pool is sized to the crawl parallelism. Failed requests
    are not retried; the crawler skips the page instead.

    Args:
        pool_size: Number of connections kept per host.

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()

    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=0
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "es-ES,es;q=0.9,en;q=0.5",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    })

    return session


def validate_url(url: str) -> bool:
    """
    Validate that a URL is well-formed and uses HTTP/HTTPS.

    Args:
        url: URL string to validate.

    Returns:
        True if URL is valid, False otherwise.
    """
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def is_allowed_domain(url: str, allowed_domain: str) -> bool:
    """
    Check whether a URL points at exactly the allowed host.

    Args:
        url: Absolute URL to check.
        allowed_domain: Host name the crawl is restricted to.

    Returns:
        True if the URL's host matches, False otherwise.
    """
    if not validate_url(url):
        return False
    host = urlparse(url).hostname or ""
    return host.lower() == allowed_domain.lower()


def fetch_page(
    session: requests.Session,
    url: str,
    timeout: int = DEFAULT_TIMEOUT,
    allowed_domain: Optional[str] = None,
    rate_limiter: Optional[DomainRateLimiter] = None
) -> FetchResult:
    """
    Fetch a single URL and return the result.

    Redirects are followed here rather than by requests, so every hop can be
    checked against allowed_domain before it is requested. A redirect that
    leaves the domain fails the fetch.

    Args:
        session: Configured requests session.
        url: URL to fetch.
        timeout: Request timeout in seconds.
        allowed_domain: If set, only this host may be requested.
        rate_limiter: If set, every request (redirect hops included) waits
                      for its slot.

    Returns:
        FetchResult containing the fetch outcome.
    """
    logger.debug(f"Fetching URL: {url}")

    if not validate_url(url):
        logger.warning(f"Invalid URL format: {url}")
        return FetchResult(
            source_url=url,
            html_content=None,
            success=False,
            error_message="Invalid URL format"
        )

    current_url = url

    try:
        for _ in range(MAX_REDIRECTS + 1):
            if rate_limiter is not None:
                rate_limiter.wait(current_url)
            response = session.get(current_url, timeout=timeout, allow_redirects=False)

            location = response.headers.get("Location")
            if response.status_code not in REDIRECT_STATUSES or not location:
                break

            target = normalize_url(location, current_url)
            if allowed_domain and not is_allowed_domain(target, allowed_domain):
                logger.warning(f"Refusing redirect from {current_url} to {target}")
                return FetchResult(
                    source_url=url,
                    html_content=None,
                    success=False,
                    error_message=f"Redirect to disallowed URL: {target}",
                    status_code=response.status_code
                )

            logger.debug(f"Following redirect from {current_url} to {target}")
            current_url = target
        else:
            logger.warning(f"Too many redirects for {url}")
            return FetchResult(
                source_url=url,
                html_content=None,
                success=False,
                error_message="Too many redirects"
            )

        content_type = response.headers.get("Content-Type", "")

        if response.status_code != 200:
            logger.warning(f"HTTP {response.status_code} for {url}")
            return FetchResult(
                source_url=url,
                html_content=None,
                success=False,
                error_message=f"HTTP {response.status_code}",
                status_code=response.status_code,
                content_type=content_type
            )

        # Without a declared charset requests falls back to ISO-8859-1,
        # which mangles the accented field labels
        if "charset" not in content_type.lower():
            response.encoding = response.apparent_encoding

        logger.debug(f"Fetched {current_url} ({len(response.text)} bytes)")
        return FetchResult(
            source_url=url,
            html_content=response.text,
            success=True,
            status_code=response.status_code,
            content_type=content_type,
            final_url=current_url
        )

    except requests.exceptions.Timeout:
        logger.warning(f"Timeout fetching {url}")
        return FetchResult(
            source_url=url,
            html_content=None,
            success=False,
            error_message="Request timeout"
        )

    except requests.exceptions.ConnectionError as e:
        logger.warning(f"Connection error for {url}: {e}")
        return FetchResult(
            source_url=url,
            html_content=None,
            success=False,
            error_message=f"Connection error: {str(e)}"
        )

    except requests.exceptions.RequestException as e:
        logger.error(f"Request exception for {url}: {e}")
        return FetchResult(
            source_url=url,
            html_content=None,
            success=False,
            error_message=f"Request failed: {str(e)}"
        )
