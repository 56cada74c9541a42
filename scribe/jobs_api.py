"""Job endpoints: start OCR/format/translate, inspect, resume, reset, download.

Jobs run in the background by default and the start request answers 202 with
the job id; poll `GET /jobs/{id}` for progress. Pass `"wait": true` to run the
job inside the request instead.
"""

import logging
from typing import Dict, List, Optional, cast

from fastapi import APIRouter, HTTPException, Request
from starlette.responses import JSONResponse, Response

from scribe.config import parse_key_list
from scribe.document import WORD_MIME_TYPE, download_filename, to_word_html
from scribe.errors import (
    AllCredentialsExhausted,
    InvalidCredential,
    InvalidInput,
    InvalidJobState,
    JobCancelled,
    NoCredentialsConfigured,
    RemoteCallError,
    ScribeError,
)
from scribe.files import decode_upload
from scribe.key_pool import KeyPool
from scribe.models import STATE_COMPLETED, ProcessingJob
from scribe.service import DocumentService

logger = logging.getLogger(__name__)

jobs_router = APIRouter(tags=["jobs"])


def _keys_from_body(body: Dict[str, object]) -> Optional[List[str]]:
    raw = body.get("api_keys")
    if raw is None:
        return None
    if isinstance(raw, str):
        return parse_key_list(raw)
    if isinstance(raw, list):
        return [str(item) for item in cast(List[object], raw)]
    raise HTTPException(status_code=400, detail="api_keys must be a list or a string")


def _job_pool(request: Request, body: Dict[str, object]) -> KeyPool:
    """Each job gets its own pool: the caller's keys, else the configured ones."""
    keys = _keys_from_body(body)
    if keys:
        return KeyPool(keys)
    default_pool: KeyPool = request.app.state.key_pool
    return default_pool.copy()


def _job_payload(job: ProcessingJob) -> Dict[str, object]:
    return {**job.to_dict(), "text": job.output}


def _error_response(exc: ScribeError, job: Optional[ProcessingJob]) -> JSONResponse:
    if isinstance(exc, AllCredentialsExhausted):
        content: Dict[str, object] = {"detail": str(exc)}
        if job is not None:
            content.update(_job_payload(job))
        return JSONResponse(
            content=content, status_code=503, headers={"Retry-After": "60"}
        )

    if isinstance(exc, (NoCredentialsConfigured, InvalidInput, InvalidCredential)):
        status_code = 400
    elif isinstance(exc, RemoteCallError):
        status_code = 502
    elif isinstance(exc, InvalidJobState):
        status_code = 409
    elif isinstance(exc, JobCancelled):
        status_code = 410
    else:
        status_code = 500

    logger.warning("Request failed (%s): %s", type(exc).__name__, exc)
    content = {"detail": str(exc)}
    if job is not None:
        content.update(job.to_dict())
    return JSONResponse(content=content, status_code=status_code)


async def _run(service: DocumentService, job: ProcessingJob) -> JSONResponse:
    try:
        await service.run(job)
    except ScribeError as exc:
        return _error_response(exc, job)
    return JSONResponse(content=_job_payload(job))


async def _start(
    service: DocumentService, job: ProcessingJob, wait: bool
) -> JSONResponse:
    """Run ``job`` inline when ``wait`` is set, else hand it to a background task."""
    if wait:
        return await _run(service, job)
    try:
        service.launch(job)
    except ScribeError as exc:
        return _error_response(exc, job)
    return JSONResponse(content=job.to_dict(), status_code=202)


async def _read_body(request: Request) -> Dict[str, object]:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be an object")
    return cast(Dict[str, object], body)


def _read_text(body: Dict[str, object]) -> str:
    text = body.get("text")
    if not isinstance(text, str) or not text.strip():
        raise HTTPException(status_code=400, detail="text is required")
    return text


def _read_flag(body: Dict[str, object], name: str, default: bool) -> bool:
    value = body.get(name, default)
    if not isinstance(value, bool):
        raise HTTPException(status_code=400, detail=f"{name} must be true or false")
    return value


@jobs_router.post("/ocr")
async def start_ocr(request: Request) -> JSONResponse:
    """Extract text from images and PDF pages, six pages per request."""
    service: DocumentService = request.app.state.service
    body = await _read_body(request)
    files = body.get("files")
    if not isinstance(files, list) or not files:
        raise HTTPException(status_code=400, detail="files is required")
    wait = _read_flag(body, "wait", False)

    try:
        payloads = [
            decode_upload(cast(Dict[str, object], entry))
            for entry in cast(List[object], files)
            if isinstance(entry, dict)
        ]
        if len(payloads) != len(files):
            raise InvalidInput("Every entry in files must be an object")
        job = service.create_ocr_job(payloads, _job_pool(request, body))
    except ScribeError as exc:
        return _error_response(exc, None)
    return await _start(service, job, wait)


@jobs_router.post("/format")
async def start_format(request: Request) -> JSONResponse:
    """Convert a long text into Word-ready HTML."""
    service: DocumentService = request.app.state.service
    body = await _read_body(request)
    text = _read_text(body)
    process_footnotes = _read_flag(body, "process_footnotes", True)
    wait = _read_flag(body, "wait", False)

    try:
        job = service.create_format_job(
            text, _job_pool(request, body), process_footnotes
        )
    except ScribeError as exc:
        return _error_response(exc, None)
    return await _start(service, job, wait)


@jobs_router.post("/translate")
async def start_translate(request: Request) -> JSONResponse:
    """Translate a long text into HTML in the target language."""
    service: DocumentService = request.app.state.service
    body = await _read_body(request)
    text = _read_text(body)
    target_language = body.get("target_language")
    if not isinstance(target_language, str) or not target_language.strip():
        raise HTTPException(status_code=400, detail="target_language is required")
    domain = str(body.get("domain") or "general")
    process_footnotes = _read_flag(body, "process_footnotes", True)
    wait = _read_flag(body, "wait", False)

    try:
        job = service.create_translate_job(
            text,
            _job_pool(request, body),
            target_language,
            domain,
            process_footnotes,
        )
    except ScribeError as exc:
        return _error_response(exc, None)
    return await _start(service, job, wait)


def _get_job_or_404(service: DocumentService, job_id: str) -> ProcessingJob:
    job = service.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job


@jobs_router.get("/jobs/{job_id}")
async def get_job(request: Request, job_id: str) -> Dict[str, object]:
    service: DocumentService = request.app.state.service
    return _job_payload(_get_job_or_404(service, job_id))


@jobs_router.post("/jobs/{job_id}/resume")
async def resume_job(request: Request, job_id: str) -> JSONResponse:
    """Add keys to a paused job and continue from the unit that failed."""
    service: DocumentService = request.app.state.service
    job = _get_job_or_404(service, job_id)
    body = await _read_body(request)
    keys = _keys_from_body(body)
    if not keys:
        raise HTTPException(status_code=400, detail="api_keys is required")
    wait = _read_flag(body, "wait", False)

    try:
        if not wait:
            service.launch_resume(job, keys)
            return JSONResponse(content=job.to_dict(), status_code=202)
        await service.resume(job, keys)
    except ScribeError as exc:
        return _error_response(exc, job)
    return JSONResponse(content=_job_payload(job))


@jobs_router.delete("/jobs/{job_id}")
async def reset_job(request: Request, job_id: str) -> Response:
    service: DocumentService = request.app.state.service
    if not service.discard_job(job_id):
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return Response(status_code=204)


@jobs_router.get("/jobs/{job_id}/download")
async def download_job(request: Request, job_id: str) -> Response:
    """Return the finished output as a .doc file Word can open."""
    service: DocumentService = request.app.state.service
    job = _get_job_or_404(service, job_id)
    if job.state != STATE_COMPLETED:
        raise HTTPException(
            status_code=409, detail=f"Job {job_id} is {job.state}, not completed"
        )
    filename = download_filename(job.kind)
    return Response(
        content=to_word_html(job.output, job.language),
        media_type=WORD_MIME_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
