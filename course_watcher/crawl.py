"""
Crawl module for the Course Watcher pipeline.

The crawler starts at the catalog root and follows course detail links on
every page it fetches. Each page runs through the same steps in a worker
thread:

    fetch -> discover links -> extract course -> reconcile with the store

The orchestrating loop owns the frontier. It schedules newly discovered
addresses and finishes when no fetch is in flight and nothing is queued.
Politeness is enforced by a bounded worker pool plus a per-domain rate
limiter; both apply at the same time.
"""

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import requests

from course_watcher.config import WatcherConfig
from course_watcher.fetch import create_session, fetch_page, is_allowed_domain
from course_watcher.models import CourseRecord
from course_watcher.parse import discover_detail_links, extract_course, parse_html
from course_watcher.rate_limiter import DomainRateLimiter
from course_watcher.store import CourseStore, StoreError
from course_watcher.utils import get_logger, normalize_url


# Module logger
logger = get_logger("crawl")


@dataclass
class PageOutcome:
    """Links found on one processed page, to be fed back into the frontier."""
    url: str
    links: List[str] = field(default_factory=list)


@dataclass
class CrawlResult:
    """
    Summary of one crawl run.

    Attributes:
        new_courses: Courses that were not in the store, in the order they
                     were reconciled.
        pages_fetched: Pages fetched successfully.
        pages_failed: Pages skipped because of fetch or parse errors.
        courses_found: Course pages extracted, new or known.
        courses_known: Course pages already present in the store.
    """
    new_courses: List[CourseRecord] = field(default_factory=list)
    pages_fetched: int = 0
    pages_failed: int = 0
    courses_found: int = 0
    courses_known: int = 0


class CourseCrawler:
    """
    Crawl the catalog and collect courses missing from the store.

    Args:
        config: Run configuration (root URL, domain and politeness limits).
        store: Initialized course store.
        session: Optional HTTP session. When omitted one is created and
                 closed by crawl().
    """

    def __init__(
        self,
        config: WatcherConfig,
        store: CourseStore,
        session: Optional[requests.Session] = None
    ):
        self.config = config
        self.store = store
        self.rate_limiter = DomainRateLimiter(config.request_delay)
        self._session = session
        self._reconcile_lock = threading.Lock()
        self._visited: Set[str] = set()
        self._result = CrawlResult()

    def crawl(self) -> CrawlResult:
        """
        Run the crawl until the frontier is drained.

        Returns:
            CrawlResult with the new courses and page counters.

        Raises:
            StoreError: If the store cannot be read. Pending pages are
                        cancelled before the error propagates.
        """
        self._visited = set()
        self._result = CrawlResult()

        owns_session = self._session is None
        session = self._session or create_session(self.config.parallelism)

        logger.info(
            f"Starting crawl of {self.config.root_url} "
            f"(parallelism={self.config.parallelism}, delay={self.config.request_delay}s)"
        )

        try:
            with ThreadPoolExecutor(
                max_workers=self.config.parallelism,
                thread_name_prefix="crawl"
            ) as executor:
                self._run_frontier(executor, session)
        finally:
            if owns_session:
                session.close()

        result = self._result
        logger.info(
            f"Crawl complete: {result.pages_fetched} page(s) fetched, "
            f"{result.pages_failed} failed, {result.courses_found} course(s) found, "
            f"{len(result.new_courses)} new"
        )
        return result

    def _run_frontier(self, executor: ThreadPoolExecutor, session: requests.Session) -> None:
        pending: Dict[Future, str] = {}
        self._schedule(executor, session, pending, self.config.root_url)

        while pending:
            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                pending.pop(future)
                try:
                    outcome = future.result()
                except StoreError:
                    for other in pending:
                        other.cancel()
                    raise

                for link in outcome.links:
                    self._schedule(executor, session, pending, link)

    def _schedule(
        self,
        executor: ThreadPoolExecutor,
        session: requests.Session,
        pending: Dict[Future, str],
        url: str
    ) -> None:
        address = normalize_url(url, self.config.root_url)

        if address in self._visited:
            return

        if not is_allowed_domain(address, self.config.allowed_domain):
            logger.debug(f"Skipping off-domain URL: {address}")
            return

        self._visited.add(address)
        pending[executor.submit(self.process_page, session, address)] = address

    def process_page(self, session: requests.Session, url: str) -> PageOutcome:
        """
        Fetch one page, discover its links and reconcile its course.

        Fetch and parse failures are logged and counted; the page then
        contributes no links.
        """
        logger.info(f"Visiting {url}")

        fetched = fetch_page(
            session,
            url,
            self.config.timeout,
            allowed_domain=self.config.allowed_domain,
            rate_limiter=self.rate_limiter
        )
        if not fetched.success:
            logger.warning(f"Skipping {url}: {fetched.error_message}")
            self._count_failure()
            return PageOutcome(url=url)

        with self._reconcile_lock:
            self._result.pages_fetched += 1

        if not fetched.is_html:
            logger.debug(f"Skipping non-HTML page {url} ({fetched.content_type})")
            return PageOutcome(url=url)

        # Records are keyed by the address that actually served the page
        address = fetched.final_url or url

        try:
            soup = parse_html(fetched.html_content or "")
            links = discover_detail_links(soup, address)
            record = extract_course(soup, address)
        except Exception as e:
            logger.warning(f"Failed to parse {address}: {e}")
            self._count_failure()
            return PageOutcome(url=url)

        if record is None:
            logger.debug(f"No course on {address}")
        else:
            self.reconcile(record)

        return PageOutcome(url=url, links=links)

    def reconcile(self, record: CourseRecord) -> bool:
        """
        Check a course against the store and keep it if it is new.

        The existence check, the insert and the append happen under one lock
        so two workers can never both see the same course as new.

        Returns:
            True if the course was new.

        Raises:
            StoreError: If the store cannot be read.
        """
        with self._reconcile_lock:
            self._result.courses_found += 1

            if self.store.exists(record.address):
                self._result.courses_known += 1
                logger.debug(f"Known course: {record.title}")
                return False

            if not self.store.insert(record):
                # Still announced; the next run will retry the insert
                logger.error(f"Could not store course {record.address}")

            self._result.new_courses.append(record)

        logger.info(f"New course: {record.title}")
        return True

    def _count_failure(self) -> None:
        with self._reconcile_lock:
            self._result.pages_failed += 1
