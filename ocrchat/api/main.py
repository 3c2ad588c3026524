"""HTTP API: upload an image, run OCR, chat about it. One in-process session per server."""

from functools import lru_cache

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from pydantic import BaseModel

from ocrchat.ai.factory import list_engines
from ocrchat.ai.schema import ChatTurn, EngineDescriptor, EngineId
from ocrchat.controller import SessionController, SessionSnapshot
from ocrchat.core.errors import (
    CredentialMissingError,
    InvalidInputError,
    RequestInFlightError,
    TransportError,
)
from ocrchat.core.image import ImageArtifact
from ocrchat.ocr.job import JobView


@lru_cache(maxsize=1)
def _get_controller() -> SessionController:
    return SessionController()


app = FastAPI(title="ocrchat")


class EngineOut(BaseModel):
    id: EngineId
    name: str
    description: str
    requires_credential: bool
    credential_configured: bool


class OCRIn(BaseModel):
    engine: EngineId | None = None


class ChatIn(BaseModel):
    text: str


class ChatOut(BaseModel):
    reply: ChatTurn | None = None
    turns: list[ChatTurn]


def _engine_out(d: EngineDescriptor, controller: SessionController) -> EngineOut:
    return EngineOut(
        id=d.id,
        name=d.name,
        description=d.description,
        requires_credential=d.requires_credential,
        credential_configured=not d.requires_credential or controller.credentials.has(d.credential_kind),
    )


@app.get("/api/engines", response_model=list[EngineOut])
def api_engines(controller: SessionController = Depends(_get_controller)) -> list[EngineOut]:
    return [_engine_out(d, controller) for d in list_engines()]


@app.get("/api/state", response_model=SessionSnapshot)
def api_state(controller: SessionController = Depends(_get_controller)) -> SessionSnapshot:
    return controller.snapshot()


@app.post("/api/image", response_model=SessionSnapshot)
async def api_upload_image(
    file: UploadFile = File(...),
    controller: SessionController = Depends(_get_controller),
) -> SessionSnapshot:
    """Replace the current image. Resets OCR and chat state; does not start OCR."""
    data = await file.read()
    try:
        artifact = ImageArtifact(data, name=file.filename)
    except InvalidInputError as e:
        raise HTTPException(status_code=415, detail=str(e)) from e
    controller.load_image(artifact)
    return controller.snapshot()


@app.delete("/api/image", response_model=SessionSnapshot)
def api_clear_image(controller: SessionController = Depends(_get_controller)) -> SessionSnapshot:
    controller.clear_image()
    return controller.snapshot()


@app.post("/api/ocr", response_model=JobView)
async def api_ocr(
    body: OCRIn | None = None,
    controller: SessionController = Depends(_get_controller),
) -> JobView:
    """Run OCR on the current image. Engine failures come back as a failed job, not an HTTP error."""
    try:
        job = await controller.process(body.engine if body is not None else None)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return job.view()


@app.post("/api/chat", response_model=ChatOut)
async def api_chat(body: ChatIn, controller: SessionController = Depends(_get_controller)) -> ChatOut:
    try:
        reply = await controller.ask(body.text)
    except CredentialMissingError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RequestInFlightError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except TransportError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return ChatOut(reply=reply, turns=list(controller.chat.turns))


@app.delete("/api/chat", response_model=SessionSnapshot)
def api_reset_chat(controller: SessionController = Depends(_get_controller)) -> SessionSnapshot:
    controller.reset_chat()
    return controller.snapshot()
