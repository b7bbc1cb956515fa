"""Pipeline Orchestrator: URL -> product -> script -> video.

States: scraping -> scripting -> rendering -> complete, with error reachable
from each working state. No retries at this level: extraction and script
synthesis already degrade internally, so only rendering (or a blown time
budget) ends a run in error.

Modes:
  atomic     `await pipeline.run(url)` returns a PipelineResult or raises
  streaming  `async for ev in pipeline.run(url, "streaming")` yields
             ProgressEvents and ends after one complete/error event

Rendering runs on a thread pool sized to the CPU count so concurrent runs
never launch more ffmpeg jobs than there are cores.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Dict, Optional, TypeVar, Union
from urllib.parse import urlparse

from adreel.config import AppConfig
from adreel.errors import (
    AdreelError,
    InputValidationError,
    PipelineTimeout,
    RendererUnavailable,
    ScriptValidationFailure,
)
from adreel.extractor import ProductExtractor
from adreel.ffmpeg_render import VideoComposer
from adreel.models import PipelineResult, ProductRecord, ScriptRecord, VideoArtifact
from adreel.script_engine import ScriptEngine, validate_script

log = logging.getLogger(__name__)

T = TypeVar("T")


class Stage(str, Enum):
    SCRAPING = "scraping"
    SCRIPTING = "scripting"
    RENDERING = "rendering"
    COMPLETE = "complete"
    ERROR = "error"


class PipelineMode(str, Enum):
    ATOMIC = "atomic"
    STREAMING = "streaming"


INTERNAL_ERROR_MESSAGE = "Internal error while creating video advertisement"


@dataclass(frozen=True)
class ProgressEvent:
    step: Stage
    message: str
    progress: int
    result: Optional[PipelineResult] = None
    error: str = ""
    exception: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def terminal(self) -> bool:
        return self.step in (Stage.COMPLETE, Stage.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "step": self.step.value,
            "message": self.message,
            "progress": self.progress,
        }
        if self.result is not None:
            out["result"] = {"success": True, "data": self.result.to_dict()}
        if self.step is Stage.ERROR:
            out["error"] = self.error
        return out


def validate_url(url: Any) -> str:
    """Return the stripped URL or raise InputValidationError."""
    if not isinstance(url, str) or not url.strip():
        raise InputValidationError("URL is required")
    url = url.strip()
    try:
        parsed = urlparse(url)
        host = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError as exc:
        raise InputValidationError("Invalid URL format") from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc or not host:
        raise InputValidationError("Invalid URL format")
    return url


def public_error_message(exc: BaseException) -> str:
    """Message safe to show a caller; unexpected errors are not echoed."""
    if isinstance(exc, (AdreelError, InputValidationError)):
        return str(exc)
    return INTERNAL_ERROR_MESSAGE


class Pipeline:
    def __init__(
        self,
        cfg: AppConfig,
        *,
        extractor: Optional[ProductExtractor] = None,
        engine: Optional[ScriptEngine] = None,
        composer: Optional[VideoComposer] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.cfg = cfg
        self.extractor = extractor or ProductExtractor(cfg)
        self.engine = engine or ScriptEngine()
        self.composer = composer or VideoComposer(cfg)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=cfg.render_workers, thread_name_prefix="adreel-render",
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    # -- preconditions ---------------------------------------------------

    def ensure_renderer(self) -> None:
        if not self.composer.available():
            raise RendererUnavailable("ffmpeg is not available. Install ffmpeg to generate videos.")

    def preflight(self, url: Any) -> str:
        """Validate input and renderer before any stage starts."""
        url = validate_url(url)
        self.ensure_renderer()
        return url

    # -- single stages ---------------------------------------------------

    async def extract_only(self, url: Any) -> ProductRecord:
        return await self.extractor.extract(validate_url(url), timeout_s=self.cfg.extract_timeout_s)

    async def script_only(self, product: ProductRecord) -> ScriptRecord:
        return await self._bounded(
            asyncio.to_thread(self.engine.synthesize, product), self.cfg.script_timeout_s, Stage.SCRIPTING,
        )

    async def alternative_only(self, product: ProductRecord, previous: ScriptRecord) -> ScriptRecord:
        return await self._bounded(
            asyncio.to_thread(self.engine.synthesize_alternative, product, previous),
            self.cfg.script_timeout_s,
            Stage.SCRIPTING,
        )

    async def render_only(self, product: ProductRecord, script: ScriptRecord) -> VideoArtifact:
        try:
            validate_script(script)
        except ScriptValidationFailure as exc:
            raise InputValidationError(f"Invalid script format: {exc}") from exc
        self.ensure_renderer()
        return await self._render(product, script, self.cfg.render_timeout_s)

    # -- combined --------------------------------------------------------

    def run(
        self, url: Any, mode: Union[PipelineMode, str] = PipelineMode.ATOMIC,
    ) -> Union[Awaitable[PipelineResult], AsyncIterator[ProgressEvent]]:
        if PipelineMode(mode) is PipelineMode.STREAMING:
            return self.stream(url)
        return self.run_atomic(url)

    async def run_atomic(self, url: Any) -> PipelineResult:
        async for event in self.stream(url):
            if event.step is Stage.ERROR:
                if event.exception is None:
                    raise RuntimeError(f"error event without an exception: {event.error}")
                raise event.exception
            if event.step is Stage.COMPLETE:
                if event.result is None:
                    raise RuntimeError("complete event without a result")
                return event.result
        raise RuntimeError("pipeline stream ended without a terminal event")

    async def stream(self, url: Any) -> AsyncIterator[ProgressEvent]:
        """Yield progress events; the last one is always complete or error.

        Input and renderer checks raise before the first event.
        """
        url = self.preflight(url)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.cfg.pipeline_timeout_s

        def remaining() -> float:
            return deadline - loop.time()

        stage = Stage.SCRAPING
        try:
            yield ProgressEvent(Stage.SCRAPING, "Extracting product information...", 10)
            product = await self.extractor.extract(
                url, timeout_s=min(self.cfg.extract_timeout_s, remaining()),
            )
            log.info("scraping complete: %r (synthetic=%s)", product.title, product.is_synthetic)
            if product.is_synthetic:
                yield ProgressEvent(
                    Stage.SCRAPING, "Using synthetic product data (live extraction unavailable)...", 20,
                )

            stage = Stage.SCRIPTING
            yield ProgressEvent(Stage.SCRIPTING, "Generating video script...", 40)
            script = await self._bounded(
                asyncio.to_thread(self.engine.synthesize, product),
                min(self.cfg.script_timeout_s, remaining()),
                Stage.SCRIPTING,
            )
            log.info("script complete: %r (%ss)", script.title, script.total_duration)

            stage = Stage.RENDERING
            yield ProgressEvent(Stage.RENDERING, "Creating video advertisement...", 70)
            video = await self._render(product, script, remaining())
            log.info("video complete: %s", video.url)
        except Exception as exc:  # noqa: BLE001
            if isinstance(exc, (AdreelError, InputValidationError)):
                log.error("pipeline failed during %s: %s", stage.value, exc)
            else:
                log.exception("pipeline crashed during %s", stage.value)
            yield ProgressEvent(Stage.ERROR, f"Failed during {stage.value}", 0,
                                error=public_error_message(exc), exception=exc)
            return

        result = PipelineResult(product=product, script=script, video=video)
        yield ProgressEvent(Stage.COMPLETE, "Video advertisement ready", 100, result=result)

    # -- helpers ---------------------------------------------------------

    async def _bounded(self, aw: Awaitable[T], timeout_s: float, stage: Stage) -> T:
        if timeout_s <= 0:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise PipelineTimeout(stage.value, 0)
        try:
            return await asyncio.wait_for(aw, timeout=timeout_s)
        except asyncio.TimeoutError as exc:
            raise PipelineTimeout(stage.value, timeout_s) from exc

    async def _render(self, product: ProductRecord, script: ScriptRecord, timeout_s: float) -> VideoArtifact:
        cancel = threading.Event()
        job = self._executor.submit(self._compose, product, script, cancel)
        try:
            return await self._bounded(asyncio.wrap_future(job), timeout_s, Stage.RENDERING)
        except BaseException:
            cancel.set()
            # the worker may still finish and publish after we gave up on it
            job.add_done_callback(_discard_abandoned_video)
            raise

    def _compose(self, product: ProductRecord, script: ScriptRecord, cancel: threading.Event) -> VideoArtifact:
        return self.composer.compose(product, script, cancel=cancel)


def _discard_abandoned_video(job: Future[VideoArtifact]) -> None:
    if job.cancelled() or job.exception() is not None:
        return
    video = job.result()
    log.warning("removing %s: render finished after its run failed", video.file_path.name)
    video.file_path.unlink(missing_ok=True)
