"""
Batch Scheduler
Periodically re-analyzes sites whose verdict is missing, old or stale.

Work runs in chunks; items within a chunk run concurrently up to a limit,
each under its own timeout. A stop request is honoured between chunks.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.base import get_session_factory, utcnow
from app.schemas.analysis import AnalysisResult
from app.schemas.errors import NotFoundError
from app.services.document_source import DocumentSource
from app.services.risk_service import RiskService
from app.services.site_service import SiteService

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class BatchReport(BaseModel):
    """Outcome of one batch run"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    total: int = 0
    succeeded: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    cancelled: bool = False


class BatchScheduler:
    """Background re-analysis of sites"""

    def __init__(
        self,
        risk_service: RiskService,
        document_source: DocumentSource,
        site_service: Optional[SiteService] = None,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        interval_hours: Optional[float] = None,
        freshness_hours: Optional[float] = None,
        chunk_size: Optional[int] = None,
        concurrency: Optional[int] = None,
        item_timeout: Optional[float] = None,
        chunk_delay: Optional[float] = None
    ):
        self.risk_service = risk_service
        self.document_source = document_source
        self.site_service = site_service or risk_service.sites
        self._session_factory = session_factory

        self.interval_hours = interval_hours if interval_hours is not None else settings.BATCH_INTERVAL_HOURS
        self.freshness_hours = freshness_hours if freshness_hours is not None else settings.BATCH_FRESHNESS_HOURS
        self.chunk_size = max(1, chunk_size or settings.BATCH_CHUNK_SIZE)
        self.concurrency = max(1, concurrency or settings.BATCH_CONCURRENCY)
        self.item_timeout = item_timeout if item_timeout is not None else settings.BATCH_ITEM_TIMEOUT
        self.chunk_delay = chunk_delay if chunk_delay is not None else settings.BATCH_CHUNK_DELAY

        self._active_runs = 0
        self.last_report: Optional[BatchReport] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._semaphore = asyncio.Semaphore(self.concurrency)

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    @property
    def state(self) -> SchedulerState:
        """RUNNING while a batch is in progress, scheduled or manual"""
        return SchedulerState.RUNNING if self._active_runs else SchedulerState.IDLE

    @property
    def is_started(self) -> bool:
        """Whether the periodic loop is alive"""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic loop; the first run happens after one interval"""
        if self.is_started:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info(
            f"Batch scheduler started (every {self.interval_hours}h, chunk {self.chunk_size}, "
            f"concurrency {self.concurrency})"
        )

    async def stop(self) -> None:
        """Stop after the chunk in progress, if any"""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is not None:
            try:
                # One chunk is bounded by its items' timeouts.
                await asyncio.wait_for(task, timeout=self.item_timeout + self.chunk_delay + 5)
            except asyncio.TimeoutError:
                logger.warning("Batch scheduler did not stop in time, cancelled")
            except asyncio.CancelledError:
                pass
        logger.info("Batch scheduler stopped")

    async def _loop(self) -> None:
        interval = self.interval_hours * 3600
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Batch run failed: {e}", exc_info=True)

    async def run_once(self) -> BatchReport:
        """One pass over every site needing analysis"""
        self._active_runs += 1
        try:
            return await self._run()
        finally:
            self._active_runs -= 1

    async def _run(self) -> BatchReport:
        report = BatchReport(started_at=utcnow())

        async with self.session_factory() as db:
            sites = await self.site_service.list_sites_needing_analysis(db, self.freshness_hours)
        site_ids = [site.id for site in sites]
        report.total = len(site_ids)
        logger.info(f"Batch run: {report.total} sites need analysis")

        chunks = [site_ids[i:i + self.chunk_size] for i in range(0, len(site_ids), self.chunk_size)]
        for index, chunk in enumerate(chunks):
            if self._stop_event.is_set():
                report.cancelled = True
                logger.info(f"Batch run cancelled with {len(chunks) - index} chunks left")
                break

            outcomes = await asyncio.gather(*(self._process_site(site_id) for site_id in chunk))
            for site_id, error in outcomes:
                if error is None:
                    report.succeeded.append(site_id)
                else:
                    report.failed[site_id] = error

            if index < len(chunks) - 1 and self.chunk_delay > 0:
                await asyncio.sleep(self.chunk_delay)

        report.finished_at = utcnow()
        self.last_report = report
        logger.info(
            f"Batch run finished: {len(report.succeeded)} succeeded, {len(report.failed)} failed"
            f"{' (cancelled)' if report.cancelled else ''}"
        )
        return report

    async def _process_site(self, site_id: str):
        """(site_id, error message or None); never raises"""
        async with self._semaphore:
            try:
                await asyncio.wait_for(
                    self.analyze_site_now(site_id, refresh_stale=True),
                    timeout=self.item_timeout,
                )
                return site_id, None
            except asyncio.TimeoutError:
                logger.warning(f"Analysis of site {site_id} timed out after {self.item_timeout}s")
                return site_id, f"timed out after {self.item_timeout}s"
            except Exception as e:
                logger.warning(f"Analysis of site {site_id} failed: {e}")
                return site_id, str(e) or type(e).__name__

    async def analyze_site_now(self, site_id: str, refresh_stale: bool = False) -> AnalysisResult:
        """
        Fetch and analyze a site's document immediately.

        Raises:
            NotFoundError: If the site does not exist or has no document
        """
        async with self.session_factory() as db:
            site = await self.site_service.get_site(db, site_id)
        if site is None:
            raise NotFoundError(f"Site {site_id} not found")

        document = await self.document_source.fetch(site)
        if document is None:
            raise NotFoundError(f"No document available for site {site.domain}")

        return await self.risk_service.analyze_site_content(
            site.id, document.content, document.content_type, refresh_stale=refresh_stale
        )
