# main.py
import logging
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from config import Settings, load_settings
from PlantIdentifier import OpenAIVisionBackend, PlantIdentifier
from UploadController import (
    ACCEPTED_EXTENSIONS,
    ACCEPTED_TYPES,
    UploadController,
    UploadedImage,
    ViewState,
    encode_data_url,
    is_accepted,
)

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

PHOTO_TIPS = [
    "Take a clear, well-lit photo",
    "Include leaves, flowers, and overall structure",
    "Avoid blurry or dark images",
    "Try to capture distinctive features of the plant",
]


def build_identifier(settings: Settings) -> PlantIdentifier:
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; every identification will fail")
        return PlantIdentifier(backend=None)
    return PlantIdentifier(backend=OpenAIVisionBackend(api_key=settings.openai_api_key, model=settings.model))


async def read_upload(file: UploadFile) -> UploadedImage:
    return UploadedImage(
        filename=file.filename or "",
        content_type=file.content_type or "",
        data=await file.read(),
    )


def create_app(identifier: Optional[PlantIdentifier] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="PlantIdentify")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.identifier = identifier or build_identifier(settings)

    def render(request: Request, view: ViewState) -> HTMLResponse:
        result = view.result
        return templates.TemplateResponse(
            request=request,
            name="index.html",
            context={
                "view": view,
                "plant": result.plant if result is not None else None,
                "tips": PHOTO_TIPS,
                "accept": ",".join(sorted(ACCEPTED_TYPES)),
                "extensions": ACCEPTED_EXTENSIONS,
            },
        )

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request):
        return render(request, UploadController(app.state.identifier).view())

    @app.post("/", response_class=HTMLResponse)
    async def upload(request: Request, file: Optional[List[UploadFile]] = File(None)):
        uploads = [await read_upload(f) for f in (file or [])]
        controller = UploadController(app.state.identifier)
        return render(request, await run_in_threadpool(controller.drop, uploads))

    @app.post("/retry", response_class=HTMLResponse)
    def retry(request: Request):
        return render(request, UploadController(app.state.identifier).retry())

    async def accepted_image(file: Optional[UploadFile]) -> str:
        if file is None:
            raise HTTPException(status_code=400, detail="No file uploaded.")
        upload = await read_upload(file)
        if not is_accepted(upload):
            raise HTTPException(status_code=400, detail="File must be a JPEG, PNG or WebP image.")
        try:
            return encode_data_url(upload)
        except Exception as e:
            raise HTTPException(status_code=400, detail=f"Error processing image: {e}")

    @app.post("/api/identify")
    async def identify(file: Optional[UploadFile] = File(None)):
        image = await accepted_image(file)
        result = await run_in_threadpool(app.state.identifier.identify, image)
        return result.model_dump(mode="json", by_alias=True)

    @app.post("/predict/")
    async def predict(file: Optional[UploadFile] = File(None)):
        image = await accepted_image(file)
        info = await run_in_threadpool(app.state.identifier.identify_plant, image)
        return info.to_json()

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "model": settings.model,
            "configured": app.state.identifier.configured,
        }

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host=app.state.settings.host, port=app.state.settings.port, reload=True)
