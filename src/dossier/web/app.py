"""FastAPI transport for the operator console."""

import io
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, Response

from dossier import __version__
from dossier.ai.client import AnalysisClient, get_client
from dossier.config import AppConfig, get_config
from dossier.core.media import MediaValidationError
from dossier.output.html_report import ConsoleRenderer
from dossier.web.session import AnalysisSession, Failed, StagedUpload

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "An analysis is already in progress. Wait for the report before resubmitting."


def create_app(
    config: AppConfig | None = None,
    client: AnalysisClient | None = None,
) -> FastAPI:
    """Build the console application.

    The analysis client is created here, before the server starts, so a
    missing API key aborts startup with ConfigurationError.
    """
    config = config or get_config()
    client = client or get_client(config)
    session = AnalysisSession(client)
    renderer = ConsoleRenderer(title=config.web.title)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Analysis console ready (model {client.model_name})")
        yield
        logger.info("Shutting down analysis console...")
        session.close()

    app = FastAPI(
        title="Dossier Analyst",
        description="Multimodal intelligence analysis console",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session = session
    app.state.renderer = renderer
    app.state.config = config

    @app.get("/", response_class=HTMLResponse)
    async def console(request: Request):
        return HTMLResponse(renderer.render_page(session.state))

    @app.post("/analyze", response_class=HTMLResponse)
    async def analyze(
        request: Request,
        file: UploadFile | None = File(None),
        directive: str = Form(""),
    ):
        upload = None
        if file is not None:
            content = await file.read()
            upload = StagedUpload(
                file_name=file.filename,
                mime_type=file.content_type,
                handle=io.BytesIO(content),
            )

        if session.is_busy:
            return HTMLResponse(
                renderer.render_page(session.state, notice=BUSY_MESSAGE, directive=directive),
                status_code=409,
            )

        try:
            state = await session.submit(upload, directive)
        except MediaValidationError as e:
            logger.info(f"Submission rejected: {e.message}")
            return HTMLResponse(
                renderer.render_page(session.state, notice=e.message, directive=directive),
                status_code=422,
            )

        status_code = 502 if isinstance(state, Failed) else 200
        return HTMLResponse(
            renderer.render_page(state, directive=directive),
            status_code=status_code,
        )

    @app.get("/preview/{token}")
    async def preview(token: str):
        entry = session.previews.get(token)
        if entry is None:
            raise HTTPException(status_code=404, detail="Preview not found")
        content, mime_type = entry
        return Response(content=content, media_type=mime_type)

    @app.get("/api/session")
    async def session_state():
        return JSONResponse(session.snapshot())

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
