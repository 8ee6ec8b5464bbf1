"""HTTP API for the POS voice engine.

Exposes the listening session to the POS front end: start/stop listening,
read the live transcript, the last command and the command history, and
feed recognition results captured elsewhere (a browser recognizer posting
events, or a device uploading WAV audio).

Session-touching endpoints are ``async`` so they run on the event loop
thread, the same thread the microphone backend delivers its events to.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, Callable, Dict, Optional

import speech_recognition as sr
from fastapi import Body, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from voicepos.catalog import CATALOG, CATEGORY_LABELS, commands_by_category
from voicepos.config import Settings, load_settings
from voicepos.history import CommandHistory
from voicepos.router import CommandResult, CommandRouter
from voicepos.session import CapabilityUnavailable, VoiceSession
from voicepos.stt_pipeline import RecognizerCapture, transcribe_wav
from voicepos.voice_input import CaptureConfig, Error, Final, decode_event
from voicepos.voice_output import Pyttsx3Speaker, VoiceOutput

log = logging.getLogger(__name__)

Transcriber = Callable[[bytes], Optional[Final]]


def log_command(result: CommandResult) -> None:
    """Default host handler: the POS integration hooks in here."""
    log.info("Executing command %s with %s", result.action.value, dict(result.parameters))


def build_router() -> CommandRouter:
    router = CommandRouter()
    for intent in CATALOG:
        router.register(intent.action, log_command)
    return router


def build_session(settings: Settings, loop: Optional[asyncio.AbstractEventLoop] = None) -> VoiceSession:
    """Wire the microphone, router and pyttsx3 speaker from ``settings``."""
    capture = None
    if RecognizerCapture.is_available():
        capture = RecognizerCapture(
            CaptureConfig(language=settings.language),
            timeout=settings.listen_timeout,
            phrase_time_limit=settings.phrase_time_limit,
            device_index=settings.device_index,
            loop=loop,
        )
    return VoiceSession(
        capture,
        build_router(),
        VoiceOutput.from_settings(settings, Pyttsx3Speaker()),
        history=CommandHistory(settings.history_capacity),
        threshold=settings.confidence_threshold,
    )


def create_app(
    session: Optional[VoiceSession] = None,
    transcriber: Optional[Transcriber] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.session is None:
            app.state.session = build_session(settings, asyncio.get_running_loop())
        try:
            yield
        finally:
            current: VoiceSession = app.state.session
            current.stop()
            speaker = current.voice.speaker
            if isinstance(speaker, Pyttsx3Speaker):
                speaker.close()

    app = FastAPI(title="VoicePOS API", lifespan=lifespan)
    app.state.session = session
    app.state.transcriber = transcriber or partial(transcribe_wav, language=settings.language)

    def _session(request: Request) -> VoiceSession:
        current = request.app.state.session
        if current is None:
            raise HTTPException(status_code=503, detail="Voice session is not ready")
        return current

    @app.get("/commands")
    async def list_commands() -> Any:
        groups = [
            {
                "category": category.value,
                "label": CATEGORY_LABELS[category],
                "commands": [intent.to_dict() for intent in intents],
            }
            for category, intents in commands_by_category().items()
        ]
        return JSONResponse(content={"categories": groups})

    @app.get("/session")
    async def get_session(request: Request) -> Any:
        return JSONResponse(content=_session(request).snapshot())

    @app.post("/session/start")
    async def start_listening(request: Request) -> Any:
        current = _session(request)
        try:
            current.start()
        except CapabilityUnavailable as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        return JSONResponse(content=current.snapshot())

    @app.post("/session/stop")
    async def stop_listening(request: Request) -> Any:
        current = _session(request)
        current.stop()
        return JSONResponse(content=current.snapshot())

    @app.post("/utterance")
    async def receive_utterance(request: Request, payload: Dict[str, Any] = Body(...)) -> Any:
        """Feed one recognition event (interim, final, error or end) to the session."""
        current = _session(request)
        try:
            event = decode_event(payload)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        current.handle_event(event)
        return JSONResponse(content=current.snapshot())

    @app.post("/voice")
    async def receive_voice(request: Request, file: UploadFile = File(...)) -> Any:
        """Receive a WAV audio file, transcribe it and run it as a final utterance."""
        if file.content_type not in ("audio/wav", "audio/x-wav"):
            raise HTTPException(status_code=400, detail="Only WAV audio is supported")
        current = _session(request)
        content = await file.read()
        try:
            final = await run_in_threadpool(request.app.state.transcriber, content)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Unreadable WAV audio: {exc}")
        except sr.RequestError as exc:
            log.error("Speech recognition request failed: %s", exc)
            raise HTTPException(status_code=502, detail="Speech recognition service failed")
        if final is None:
            current.handle_event(Error("no-speech"))
            return JSONResponse(content={"transcript": "", "result": None})
        result = current.handle_event(final)
        return JSONResponse(content={"transcript": final.transcript, "result": result.to_dict()})

    @app.get("/history")
    async def get_history(request: Request) -> Any:
        items = [result.to_dict() for result in _session(request).history]
        return JSONResponse(content={"history": items})

    return app


app = create_app()

# If running directly, start the server (use uvicorn)
if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=load_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
