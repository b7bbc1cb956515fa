"""adreel HTTP API.

FastAPI service exposing the pipeline and its individual stages.

Endpoints:
- POST /api/scrape                        {url}
- POST /api/generate-script               {productData}
- POST /api/generate-alternative-script   {productData, previousScript}
- POST /api/generate-video                {productData, script}
- POST /api/create-video-ad               {url, stream?}

Responses are {"success": true, "data": ...} or {"success": false, "error": ...}.
create-video-ad streams newline-delimited JSON progress events unless
"stream": false is sent, in which case it answers once when done.
"""

from __future__ import annotations

import argparse
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from adreel import __version__
from adreel.browser import close_shared_session
from adreel.config import AppConfig, load_config
from adreel.errors import (
    AdreelError,
    InputValidationError,
    PipelineTimeout,
    RendererUnavailable,
)
from adreel.logs import setup_logging
from adreel.models import ProductRecord, ScriptRecord
from adreel.pipeline import Pipeline

log = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def _ok(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _json_body(req: Request) -> Dict[str, Any]:
    try:
        body = await req.json()
    except ValueError as exc:
        raise InputValidationError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise InputValidationError("Request body must be a JSON object")
    return body


async def _ndjson(pipeline: Pipeline, url: str) -> AsyncIterator[bytes]:
    async for event in pipeline.stream(url):
        yield (json.dumps(event.to_dict(), ensure_ascii=False) + "\n").encode("utf-8")


def create_app(cfg: Optional[AppConfig] = None, *, pipeline: Optional[Pipeline] = None) -> FastAPI:
    cfg = cfg or load_config()
    pipe = pipeline or Pipeline(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        cfg.ensure_dirs()
        yield
        await close_shared_session()
        pipe.close()

    app = FastAPI(title="adreel", version=__version__, lifespan=lifespan)
    app.state.pipeline = pipe

    @app.exception_handler(InputValidationError)
    async def _bad_input(req: Request, exc: InputValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RendererUnavailable)
    async def _no_renderer(req: Request, exc: RendererUnavailable) -> JSONResponse:
        return _error(503, exc.message)

    @app.exception_handler(PipelineTimeout)
    async def _timeout(req: Request, exc: PipelineTimeout) -> JSONResponse:
        return _error(504, exc.message)

    @app.exception_handler(AdreelError)
    async def _failed(req: Request, exc: AdreelError) -> JSONResponse:
        log.error("%s %s failed: %s (%s)", req.method, req.url.path, exc.message, exc.code)
        return _error(500, exc.message)

    @app.exception_handler(Exception)
    async def _crashed(req: Request, exc: Exception) -> JSONResponse:
        log.exception("%s %s crashed", req.method, req.url.path)
        return _error(500, "Internal server error")

    @app.post("/api/scrape")
    async def scrape(req: Request) -> Dict[str, Any]:
        body = await _json_body(req)
        product = await pipe.extract_only(body.get("url"))
        return _ok(product.to_dict())

    @app.post("/api/generate-script")
    async def generate_script(req: Request) -> Dict[str, Any]:
        body = await _json_body(req)
        product = ProductRecord.from_dict(body.get("productData"))
        script = await pipe.script_only(product)
        return _ok(script.to_dict())

    @app.post("/api/generate-alternative-script")
    async def generate_alternative_script(req: Request) -> Dict[str, Any]:
        body = await _json_body(req)
        product = ProductRecord.from_dict(body.get("productData"))
        if body.get("previousScript") is None:
            raise InputValidationError("previousScript is required")
        previous = ScriptRecord.from_dict(body.get("previousScript"))
        script = await pipe.alternative_only(product, previous)
        return _ok(script.to_dict())

    @app.post("/api/generate-video")
    async def generate_video(req: Request) -> Dict[str, Any]:
        body = await _json_body(req)
        product = ProductRecord.from_dict(body.get("productData"))
        script = ScriptRecord.from_dict(body.get("script"))
        video = await pipe.render_only(product, script)
        return _ok(video.to_dict())

    @app.post("/api/create-video-ad", response_model=None)
    async def create_video_ad(req: Request) -> Any:
        body = await _json_body(req)
        url = pipe.preflight(body.get("url"))
        if body.get("stream", True) is False:
            result = await pipe.run_atomic(url)
            return _ok(result.to_dict())
        log.info("starting streamed pipeline for %s", url)
        return StreamingResponse(_ndjson(pipe, url), media_type=NDJSON_MEDIA_TYPE)

    return app


def serve(cfg: AppConfig, *, host: str, port: int) -> int:
    app = create_app(cfg)

    try:
        import uvicorn
    except Exception as exc:  # noqa: BLE001
        raise SystemExit("uvicorn is required. Install: pip install uvicorn fastapi") from exc

    log.info("serving adreel %s on %s:%d", __version__, host, port)
    uvicorn.run(app, host=host, port=port, log_level=cfg.log_level.lower())
    return 0


def main() -> int:
    cfg = load_config()
    parser = argparse.ArgumentParser(description="Run the adreel HTTP API")
    parser.add_argument("--host", default=cfg.host)
    parser.add_argument("--port", type=int, default=cfg.port)
    args = parser.parse_args()

    setup_logging(cfg.log_level, cfg.log_dir)
    return serve(cfg, host=args.host, port=args.port)


if __name__ == "__main__":
    raise SystemExit(main())
