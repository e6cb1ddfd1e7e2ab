from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


# --- Transcription: client ↔ service ---

class UnitStatus(str, Enum):
    ok = "ok"
    empty = "empty"
    skipped = "skipped"
    failed = "failed"


class UnitReport(BaseModel):
    index: int
    status: UnitStatus
    text: str = ""


class TranscribeResponse(BaseModel):
    text: str
    success_count: int
    failure_count: int
    units: list[UnitReport] = []


# --- Transformation request / response ---

class TransformRequest(BaseModel):
    transcript: str
    instruction: Optional[str] = None
    prompt_key: Optional[str] = None


class TransformResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    detail: str
