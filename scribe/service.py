"""OCR, formatting and translation built on the one chunked-job driver."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from scribe.caller import Generator, RotatingCaller
from scribe.chunker import split_media, split_text
from scribe.config import Config
from scribe.errors import InvalidInput, NoCredentialsConfigured, ScribeError
from scribe.files import expand_pages
from scribe.key_pool import KeyPool
from scribe.models import (
    KIND_FORMAT,
    KIND_OCR,
    KIND_TRANSLATE,
    STATE_RUNNING,
    MediaPayload,
    ProcessingJob,
    RequestTemplate,
    WorkUnit,
)
from scribe.orchestrator import Orchestrator, ProgressCallback
from scribe.prompts import format_template, ocr_template, translate_template

logger = logging.getLogger(__name__)

Plan = Tuple[List[WorkUnit], RequestTemplate]


class DocumentService:
    """Creates processing jobs, runs them inline or in the background, and
    keeps finished jobs around for a bounded time so their output can be
    downloaded.
    """

    def __init__(
        self,
        config: Config,
        client: Generator,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.caller = RotatingCaller(client, config.gemini_model)
        self.jobs: Dict[str, ProcessingJob] = {}
        self.tasks: Dict[str, asyncio.Task] = {}
        self._clock = clock
        self._delays: Dict[str, float] = {
            KIND_OCR: config.ocr_delay_seconds,
            KIND_FORMAT: config.format_delay_seconds,
            KIND_TRANSLATE: config.translate_delay_seconds,
        }

    def orchestrator(self, kind: str) -> Orchestrator:
        return Orchestrator(self.caller, delay_seconds=self._delays[kind])

    def _ocr_plan(self, payloads: Iterable[MediaPayload]) -> Plan:
        pages = expand_pages(payloads, self.config.max_files)
        units: List[WorkUnit] = list(split_media(pages, self.config.ocr_batch_size))
        return units, ocr_template()

    def _format_plan(self, text: str, process_footnotes: bool) -> Plan:
        units: List[WorkUnit] = list(split_text(text, self.config.format_max_chars))
        return units, format_template(process_footnotes)

    def _translate_plan(
        self, text: str, target_language: str, domain: str, process_footnotes: bool
    ) -> Plan:
        if not target_language.strip():
            raise InvalidInput("target_language is required")
        units: List[WorkUnit] = list(split_text(text, self.config.translate_max_chars))
        return units, translate_template(target_language, domain, process_footnotes)

    def _create_job(
        self,
        kind: str,
        plan: Plan,
        pool: KeyPool,
        language: str = "ar",
    ) -> ProcessingJob:
        units, template = plan
        if units and len(pool) == 0:
            raise NoCredentialsConfigured()
        self.prune()
        job = ProcessingJob(
            kind=kind,
            units=units,
            template=template,
            pool=pool,
            language=language,
        )
        self.jobs[job.job_id] = job
        logger.info(
            "Created %s job %s with %d unit(s) and %d key(s)",
            kind,
            job.job_id,
            job.total,
            len(pool),
        )
        return job

    def create_ocr_job(
        self, payloads: Iterable[MediaPayload], pool: KeyPool
    ) -> ProcessingJob:
        return self._create_job(KIND_OCR, self._ocr_plan(payloads), pool)

    def create_format_job(
        self, text: str, pool: KeyPool, process_footnotes: bool = True
    ) -> ProcessingJob:
        return self._create_job(
            KIND_FORMAT, self._format_plan(text, process_footnotes), pool
        )

    def create_translate_job(
        self,
        text: str,
        pool: KeyPool,
        target_language: str,
        domain: str = "general",
        process_footnotes: bool = True,
    ) -> ProcessingJob:
        plan = self._translate_plan(text, target_language, domain, process_footnotes)
        return self._create_job(KIND_TRANSLATE, plan, pool, language=target_language)

    def _report_progress(self, job: ProcessingJob) -> ProgressCallback:
        def report(completed: int, total: int) -> None:
            logger.info("Job %s: %d/%d units done", job.job_id, completed, total)

        return report

    async def run(
        self, job: ProcessingJob, on_progress: Optional[ProgressCallback] = None
    ) -> str:
        try:
            return await self.orchestrator(job.kind).run(
                job, on_progress or self._report_progress(job)
            )
        finally:
            self._settle(job)

    async def resume(
        self,
        job: ProcessingJob,
        api_keys: Iterable[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        try:
            return await self.orchestrator(job.kind).resume(
                job, api_keys, on_progress or self._report_progress(job)
            )
        finally:
            self._settle(job)

    def launch(self, job: ProcessingJob) -> asyncio.Task:
        """Start ``job`` in a background task.

        The state checks run before this returns, so an invalid job raises
        here instead of inside the task.
        """
        orchestrator = self.orchestrator(job.kind)
        orchestrator.start(job)
        return self._spawn(job, orchestrator.process(job, self._report_progress(job)))

    def launch_resume(
        self, job: ProcessingJob, api_keys: Iterable[str]
    ) -> asyncio.Task:
        orchestrator = self.orchestrator(job.kind)
        orchestrator.prepare_resume(job, api_keys)
        return self._spawn(job, orchestrator.process(job, self._report_progress(job)))

    def _spawn(self, job: ProcessingJob, work: Awaitable[str]) -> asyncio.Task:
        task = asyncio.create_task(self._watch(job, work))
        self.tasks[job.job_id] = task
        task.add_done_callback(lambda done: self._forget_task(job.job_id, done))
        return task

    def _forget_task(self, job_id: str, task: asyncio.Task) -> None:
        if self.tasks.get(job_id) is task:
            del self.tasks[job_id]

    async def _watch(self, job: ProcessingJob, work: Awaitable[str]) -> None:
        # The job records how it ended; the orchestrator has already logged it.
        try:
            await work
        except ScribeError as exc:
            logger.debug("Background job %s stopped: %s", job.job_id, exc)
        except Exception:
            logger.exception("Background job %s crashed", job.job_id)
        finally:
            self._settle(job)

    def _settle(self, job: ProcessingJob) -> None:
        if not job.finished:
            return
        if job.finished_at is None:
            job.finished_at = self._clock()
            job.release()
        self.prune()

    def prune(self) -> int:
        """Forget finished jobs past their TTL, then the oldest over the cap."""
        now = self._clock()
        ttl = self.config.finished_job_ttl_seconds
        finished = sorted(
            (job for job in self.jobs.values() if job.finished_at is not None),
            key=lambda job: job.finished_at or 0.0,
        )
        fresh = [job for job in finished if now - (job.finished_at or now) <= ttl]
        kept = {job.job_id for job in fresh[-self.config.max_finished_jobs :]}

        dropped = [job.job_id for job in finished if job.job_id not in kept]
        for job_id in dropped:
            del self.jobs[job_id]
        if dropped:
            logger.info("Dropped %d finished job(s)", len(dropped))
        return len(dropped)

    def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        return self.jobs.get(job_id)

    def discard_job(self, job_id: str) -> bool:
        job = self.jobs.pop(job_id, None)
        if job is None:
            return False
        job.cancelled = True
        if job.state != STATE_RUNNING:
            job.release()
        logger.info("Job %s reset", job_id)
        return True

    async def shutdown(self) -> None:
        """Cancel background jobs that are still running."""
        tasks = list(self.tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def extract_text(
        self,
        payloads: Iterable[MediaPayload],
        pool: KeyPool,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        units, template = self._ocr_plan(payloads)
        return await self.orchestrator(KIND_OCR).run_chunked_job(
            KIND_OCR, units, template, pool, on_progress
        )

    async def format_text(
        self,
        text: str,
        pool: KeyPool,
        process_footnotes: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        units, template = self._format_plan(text, process_footnotes)
        return await self.orchestrator(KIND_FORMAT).run_chunked_job(
            KIND_FORMAT, units, template, pool, on_progress
        )

    async def translate_text(
        self,
        text: str,
        pool: KeyPool,
        target_language: str,
        domain: str = "general",
        process_footnotes: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        units, template = self._translate_plan(
            text, target_language, domain, process_footnotes
        )
        return await self.orchestrator(KIND_TRANSLATE).run_chunked_job(
            KIND_TRANSLATE, units, template, pool, on_progress
        )
