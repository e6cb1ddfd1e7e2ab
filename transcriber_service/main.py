from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, UploadFile

from audio_pipeline.models import AudioSource
from common.config import TranscriberSettings
from common.schemas import (
    ErrorResponse,
    TranscribeResponse,
    TransformRequest,
    TransformResponse,
    UnitReport,
)
from transcriber_service.errors import (
    InvalidCredential,
    MissingAudioSource,
    MissingInstruction,
    MissingTranscript,
    NoTranscriptionExtracted,
    ServiceError,
)
from transcriber_service.openai_client import OpenAIClient
from transcriber_service.orchestrator import transcribe, transform
from transcriber_service.prompts import PREDEFINED_PROMPTS

logger = logging.getLogger(__name__)

settings = TranscriberSettings()
app = FastAPI(title="Chunked Transcriber")

_ERRORS = {
    401: {"model": ErrorResponse},
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def get_settings() -> TranscriberSettings:
    return settings


def get_client_factory():
    """Builds the remote capability for a credential; overridden in tests."""
    def factory(credential: str, cfg: TranscriberSettings) -> OpenAIClient:
        return OpenAIClient(credential, cfg)
    return factory


def _credential(authorization: Optional[str], cfg: TranscriberSettings) -> str:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization or cfg.openai_api_key


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/prompts")
async def prompts():
    return PREDEFINED_PROMPTS


@app.post("/transcribe", response_model=TranscribeResponse, responses=_ERRORS)
async def transcribe_audio(
    file: UploadFile = File(...),
    authorization: Optional[str] = Header(default=None),
    cfg: TranscriberSettings = Depends(get_settings),
    factory=Depends(get_client_factory),
):
    credential = _credential(authorization, cfg)
    limit = cfg.max_upload_mb * 1024 * 1024
    if file.size is not None and file.size > limit:
        raise HTTPException(status_code=413, detail=f"File too large. Maximum: {cfg.max_upload_mb}MB")
    data = await file.read()
    if len(data) > limit:
        raise HTTPException(status_code=413, detail=f"File too large. Maximum: {cfg.max_upload_mb}MB")
    source = AudioSource(
        data=data,
        media_type=file.content_type or "application/octet-stream",
        filename=file.filename or "audio",
    )

    try:
        capability = factory(credential.strip(), cfg) if credential else None
        job = await transcribe(source, credential, capability=capability, settings=cfg)
    except InvalidCredential as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    except MissingAudioSource as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except NoTranscriptionExtracted as exc:
        logger.error(
            "No transcription extracted (%d units, all failed or empty)",
            len(exc.job.results),
        )
        raise HTTPException(status_code=422, detail=str(exc))
    except Exception:
        logger.exception("Transcription job failed")
        raise HTTPException(status_code=500, detail="Transcription failed")

    return TranscribeResponse(
        text=job.transcript,
        success_count=job.success_count,
        failure_count=job.failure_count,
        units=[UnitReport(index=r.index, status=r.status, text=r.text) for r in job.results],
    )


@app.post("/transform", response_model=TransformResponse, responses=_ERRORS)
async def transform_transcript(
    req: TransformRequest,
    authorization: Optional[str] = Header(default=None),
    cfg: TranscriberSettings = Depends(get_settings),
    factory=Depends(get_client_factory),
):
    credential = _credential(authorization, cfg)
    instruction = req.instruction
    if not instruction and req.prompt_key:
        instruction = PREDEFINED_PROMPTS.get(req.prompt_key)
        if instruction is None:
            raise HTTPException(status_code=400, detail=f"Unknown prompt_key: {req.prompt_key}")

    try:
        capability = factory(credential.strip(), cfg) if credential else None
        text = await transform(req.transcript, instruction, credential, capability=capability, settings=cfg)
    except InvalidCredential as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    except (MissingTranscript, MissingInstruction) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ServiceError as exc:
        logger.error("Transformation failed: %s", exc)
        raise HTTPException(status_code=502, detail=f"OpenAI API error: {exc.message}")
    except Exception:
        logger.exception("Transformation call failed")
        raise HTTPException(status_code=502, detail="Transformation service unavailable")

    return TransformResponse(text=text)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)
