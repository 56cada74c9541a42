import asyncio
import logging
from typing import Callable, Iterable, List, Optional

from scribe.assembler import assemble
from scribe.caller import RotatingCaller
from scribe.errors import (
    AllCredentialsExhausted,
    InvalidJobState,
    JobCancelled,
    NoCredentialsConfigured,
)
from scribe.key_pool import KeyPool
from scribe.models import (
    STATE_COMPLETED,
    STATE_FAILED,
    STATE_IDLE,
    STATE_PAUSED,
    STATE_RUNNING,
    ProcessingJob,
    RequestTemplate,
    WorkUnit,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class Orchestrator:
    """Drives the units of a job through the rotating caller, one at a time.

    ``run`` and ``resume`` are the awaitable entry points. ``start`` and
    ``prepare_resume`` do their checks and state change synchronously so a
    caller can validate a job before handing ``process`` to a background task.
    """

    def __init__(self, caller: RotatingCaller, delay_seconds: float = 0.0):
        self.caller = caller
        self.delay_seconds = delay_seconds

    async def run_chunked_job(
        self,
        kind: str,
        units: List[WorkUnit],
        template: RequestTemplate,
        pool: KeyPool,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Create a job for ``units`` and run it to completion.

        On exhaustion the raised ``AllCredentialsExhausted`` carries the paused
        job in its ``job`` attribute so it can be resumed.
        """
        job = ProcessingJob(kind=kind, units=units, template=template, pool=pool)
        return await self.run(job, on_progress)

    async def run(
        self, job: ProcessingJob, on_progress: Optional[ProgressCallback] = None
    ) -> str:
        self.start(job)
        return await self.process(job, on_progress)

    async def resume(
        self,
        job: ProcessingJob,
        credentials: Iterable[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Append ``credentials`` to the job's pool and continue where it paused."""
        self.prepare_resume(job, credentials)
        return await self.process(job, on_progress)

    def start(self, job: ProcessingJob) -> None:
        if job.state != STATE_IDLE:
            raise InvalidJobState(f"Job {job.job_id} is {job.state}, expected idle")
        self._begin(job)

    def prepare_resume(self, job: ProcessingJob, credentials: Iterable[str]) -> int:
        if job.state != STATE_PAUSED:
            raise InvalidJobState(
                f"Job {job.job_id} is {job.state}, only paused jobs can resume"
            )
        added = job.pool.append(credentials)
        if added == 0:
            raise NoCredentialsConfigured("Resuming requires at least one new API key")
        logger.info(
            "Resuming job %s at unit %d/%d with %d new key(s)",
            job.job_id,
            job.index + 1,
            job.total,
            added,
        )
        self._begin(job)
        return added

    def _begin(self, job: ProcessingJob) -> None:
        if job.total and len(job.pool) == 0:
            raise NoCredentialsConfigured()
        job.state = STATE_RUNNING
        job.exhaustion = None
        job.error = None

    def _cancel(self, job: ProcessingJob) -> JobCancelled:
        error = JobCancelled(f"Job {job.job_id} was reset")
        job.state = STATE_FAILED
        job.error = error
        return error

    async def process(
        self, job: ProcessingJob, on_progress: Optional[ProgressCallback] = None
    ) -> str:
        """Process the units of a started job from ``job.index`` onwards."""
        if job.state != STATE_RUNNING:
            raise InvalidJobState(f"Job {job.job_id} is {job.state}, expected running")
        first_call = True

        while job.index < job.total:
            unit = job.units[job.index]
            if not first_call and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)
            first_call = False
            if job.cancelled:
                logger.info("Job %s was reset before unit %d", job.job_id, job.index + 1)
                raise self._cancel(job)

            try:
                parts = job.template(unit, job.total)
                text = await self.caller.call(job.pool, parts)
            except AllCredentialsExhausted as exc:
                job.state = STATE_PAUSED
                job.exhaustion = job.snapshot()
                job.output = assemble(job.results)
                exc.job = job
                logger.warning(
                    "Job %s paused at unit %d/%d: all keys exhausted",
                    job.job_id,
                    job.index + 1,
                    job.total,
                )
                raise
            except Exception as exc:
                job.state = STATE_FAILED
                job.error = exc
                logger.error(
                    "Job %s failed at unit %d/%d: %s",
                    job.job_id,
                    job.index + 1,
                    job.total,
                    exc,
                )
                raise

            if job.cancelled:
                logger.info("Job %s was reset, dropping response", job.job_id)
                raise self._cancel(job)

            job.results.append(text)
            job.index += 1
            if on_progress is not None:
                on_progress(job.index, job.total)

        job.state = STATE_COMPLETED
        job.output = assemble(job.results)
        logger.info("Job %s completed (%d units)", job.job_id, job.total)
        return job.output
