"""Video Composition Engine: ProductRecord + ScriptRecord -> VideoArtifact.

Strategy:
  1. Render 4 background stills (hero, feature, lifestyle, cta)
  2. Render one clip per scene over background[i % 4] with the scene text
  3. Concat clips via the FFmpeg concat demuxer (filter-graph concat fallback)
  4. Move the finished file into the output dir

Every step is an ordered list of RenderCandidate commands: first success
wins, exhaustion raises RenderFailure. Commands are argv lists, never shell
strings; scene text passes through sanitize_overlay_text() before it
reaches a filter graph.

Intermediate files live in a per-invocation scratch dir that is removed on
success and failure alike.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from adreel.config import AppConfig
from adreel.errors import RenderFailure, RendererUnavailable
from adreel.io import new_artifact_id, publish_file, utc_now_iso
from adreel.models import ProductRecord, Scene, ScriptRecord, VideoArtifact

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

OVERLAY_MAX_CHARS = 60
CAPTION_FONT_SIZE = 120
SCENE_FONT_SIZE = 100
DURATION_TOLERANCE_SEC = 0.5
QUALITY_TAG = "professional"


@dataclass(frozen=True)
class VisualStyle:
    name: str
    color: str
    caption: str  # empty -> product title


VISUAL_STYLES = (
    VisualStyle("hero", "0x667eea", ""),
    VisualStyle("feature", "0x4facfe", "PREMIUM QUALITY"),
    VisualStyle("lifestyle", "0x43e97b", "EXPERIENCE MORE"),
    VisualStyle("cta", "0xfa709a", "GET YOURS NOW"),
)


# ---------------------------------------------------------------------------
# Utilities
# ---------------------------------------------------------------------------

def ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


def ffprobe_duration(path: Path) -> Optional[float]:
    """Probe media duration via ffprobe."""
    try:
        proc = subprocess.run(
            ["ffprobe", "-v", "error", "-show_entries", "format=duration",
             "-of", "default=noprint_wrappers=1:nokey=1", str(path)],
            capture_output=True, text=True, timeout=30,
        )
        if proc.returncode == 0 and proc.stdout.strip():
            return float(proc.stdout.strip())
    except (OSError, ValueError, subprocess.SubprocessError):
        pass
    return None


_OVERLAY_EXTRA_CHARS = set(" -&+#/()")


def sanitize_overlay_text(text: str, max_len: int = OVERLAY_MAX_CHARS) -> str:
    """Make text safe for drawtext=text='...'.

    '$19.99 - 20% off!' -> 'USD 1999 - 20 percent off'
    Quotes, brackets, colons and sentence punctuation are dropped, currency
    and percent become words, emoji and any other filter-graph syntax
    characters are removed, whitespace is collapsed, length is capped.
    """
    t = re.sub(r"['\"]", "", text or "")
    t = re.sub(r"[:\[\]]", "", t)
    t = re.sub(r"[,;]", " ", t)
    t = t.replace("$", "USD ")
    t = t.replace("%", " percent")
    t = re.sub(r"[!?]", "", t)
    t = t.replace(".", "")
    t = "".join(ch for ch in t if ch.isalnum() or ch in _OVERLAY_EXTRA_CHARS or ch.isspace())
    t = re.sub(r"\s+", " ", t).strip()
    return t[:max_len].rstrip()


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

_FFMPEG_ERROR_PATTERNS = [
    ("No such file or directory", "MISSING_INPUT"),
    ("Invalid data found when processing input", "CORRUPT_MEDIA"),
    ("Cannot allocate memory", "OOM"),
    ("Unknown encoder", "FFMPEG_BUILD_MISSING"),
    ("No such filter", "FFMPEG_BUILD_MISSING"),
    ("Cannot find a valid font", "FONT_MISSING"),
    ("Error opening input", "MISSING_INPUT"),
    ("does not contain any stream", "CORRUPT_MEDIA"),
    ("Error parsing", "FILTER_SYNTAX"),
    ("Permission denied", "PERMISSION_DENIED"),
    ("timed out", "TIMEOUT"),
]


def classify_ffmpeg_error(stderr: str) -> str:
    """Classify FFmpeg stderr into an error code."""
    for pattern, code in _FFMPEG_ERROR_PATTERNS:
        if pattern in stderr:
            return code
    return "FFMPEG_UNKNOWN"


# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stderr: str = ""


CommandRunner = Callable[[Sequence[str], float], CommandResult]


def run_command(argv: Sequence[str], timeout: float) -> CommandResult:
    """Run one ffmpeg invocation; never raises."""
    try:
        proc = subprocess.run(list(argv), capture_output=True, text=True, timeout=timeout, check=False)
        return CommandResult(proc.returncode, proc.stderr or "")
    except subprocess.TimeoutExpired:
        return CommandResult(-1, f"command timed out after {timeout:g}s")
    except OSError as exc:
        return CommandResult(127, str(exc))


@dataclass(frozen=True)
class RenderCandidate:
    label: str
    argv: List[str]


def _check_cancel(cancel: Optional[threading.Event], step: str) -> None:
    if cancel is not None and cancel.is_set():
        raise RenderFailure("CANCELLED", f"render cancelled before {step}", step=step)


@dataclass
class StepResult:
    step: str
    output: Path
    used: str = ""
    failures: List[str] = field(default_factory=list)


def run_candidates(
    step: str,
    candidates: Sequence[RenderCandidate],
    output: Path,
    *,
    runner: CommandRunner = run_command,
    timeout: float = 120.0,
    cancel: Optional[threading.Event] = None,
) -> StepResult:
    """Try candidates in order until one produces a non-empty `output`.

    Raises RenderFailure when every candidate fails, or with code
    CANCELLED as soon as `cancel` is set; no further command is started.
    """
    result = StepResult(step=step, output=output)
    code = "FFMPEG_UNKNOWN"
    for cand in candidates:
        _check_cancel(cancel, step)
        proc = runner(cand.argv, timeout)
        if proc.returncode == 0 and output.exists() and output.stat().st_size > 0:
            result.used = cand.label
            if result.failures:
                log.info("%s: succeeded with fallback %r", step, cand.label)
            return result
        code = classify_ffmpeg_error(proc.stderr) if proc.returncode != 0 else "EMPTY_OUTPUT"
        tail = (proc.stderr or "").strip()[-300:]
        result.failures.append(f"{cand.label}: {code}")
        log.warning("%s: candidate %r failed (%s) %s", step, cand.label, code, tail)
        output.unlink(missing_ok=True)
    raise RenderFailure(
        code,
        f"{step} failed after {len(candidates)} attempt(s): {'; '.join(result.failures) or 'no candidates'}",
        step=step,
    )


@contextmanager
def scratch_workspace(root: Path, name: str) -> Iterator[Path]:
    """Per-invocation scratch dir, removed on every exit path."""
    work = root / name
    work.mkdir(parents=True, exist_ok=False)
    try:
        yield work
    finally:
        shutil.rmtree(work, ignore_errors=True)
        if work.exists():
            log.error("scratch dir not removed: %s", work)


# ---------------------------------------------------------------------------
# Command builders
# ---------------------------------------------------------------------------

def _escape_filter_value(value: str) -> str:
    return value.replace("\\", "/").replace(":", "\\:").replace("'", "")


def _drawtext(text: str, *, fontsize: int, y: str, font_file: str = "", boxed: bool = False) -> str:
    parts = [f"drawtext=text='{text}'"]
    if font_file:
        parts.append(f"fontfile='{_escape_filter_value(font_file)}'")
    parts += [f"fontsize={fontsize}", "fontcolor=white", "x=(w-text_w)/2", f"y={y}"]
    if boxed:
        parts += ["box=1", "boxcolor=black@0.8", "boxborderw=20", "shadowcolor=black", "shadowx=6", "shadowy=6"]
    else:
        parts += ["shadowcolor=black", "shadowx=8", "shadowy=8"]
    return ":".join(parts)


def visual_candidates(style: VisualStyle, caption: str, out: Path, cfg: AppConfig) -> List[RenderCandidate]:
    canvas = f"color=size={cfg.width}x{cfg.height}:color={style.color}"
    plain = ["ffmpeg", "-y", "-f", "lavfi", "-i", canvas, "-frames:v", "1", str(out)]
    cands = []
    if caption:
        vf = _drawtext(caption, fontsize=CAPTION_FONT_SIZE, y="(h-text_h)/2", font_file=cfg.font_file)
        cands.append(RenderCandidate(
            "captioned",
            ["ffmpeg", "-y", "-f", "lavfi", "-i", canvas, "-vf", vf, "-frames:v", "1", str(out)],
        ))
    cands.append(RenderCandidate("plain", plain))
    return cands


def clip_candidates(scene: Scene, text: str, visual: Path, out: Path, cfg: AppConfig) -> List[RenderCandidate]:
    scale = f"scale={cfg.width}:{cfg.height}"
    tail = ["-t", str(scene.duration), "-c:v", "libx264", "-pix_fmt", "yuv420p", "-r", str(cfg.fps), str(out)]
    cands = []
    if text:
        vf = scale + "," + _drawtext(text, fontsize=SCENE_FONT_SIZE, y="h*0.7", font_file=cfg.font_file, boxed=True)
        cands.append(RenderCandidate(
            "text-overlay", ["ffmpeg", "-y", "-loop", "1", "-i", str(visual), "-vf", vf] + tail,
        ))
    cands.append(RenderCandidate(
        "background-only", ["ffmpeg", "-y", "-loop", "1", "-i", str(visual), "-vf", scale] + tail,
    ))
    return cands


_ENCODE_ARGS = ["-c:v", "libx264", "-preset", "medium", "-crf", "20",
                "-pix_fmt", "yuv420p", "-movflags", "+faststart"]


def write_concat_list(clips: Sequence[Path], list_path: Path) -> Path:
    lines = []
    for clip in clips:
        escaped = str(clip.resolve()).replace("'", "'\\''")
        lines.append(f"file '{escaped}'\n")
    list_path.write_text("".join(lines), encoding="utf-8")
    return list_path


def concat_candidates(clips: Sequence[Path], list_path: Path, out: Path) -> List[RenderCandidate]:
    demuxer = ["ffmpeg", "-y", "-f", "concat", "-safe", "0", "-i", str(list_path)] + _ENCODE_ARGS + [str(out)]
    inputs: List[str] = []
    for clip in clips:
        inputs += ["-i", str(clip)]
    graph = "".join(f"[{i}:v]" for i in range(len(clips))) + f"concat=n={len(clips)}:v=1:a=0[outv]"
    filtergraph = ["ffmpeg", "-y"] + inputs + ["-filter_complex", graph, "-map", "[outv]"] + _ENCODE_ARGS + [str(out)]
    return [RenderCandidate("concat-demuxer", demuxer), RenderCandidate("concat-filter", filtergraph)]


# ---------------------------------------------------------------------------
# VideoComposer
# ---------------------------------------------------------------------------

class VideoComposer:
    def __init__(
        self,
        cfg: AppConfig,
        *,
        runner: CommandRunner = run_command,
        available: Callable[[], bool] = ffmpeg_available,
        prober: Callable[[Path], Optional[float]] = ffprobe_duration,
    ):
        self.cfg = cfg
        self.runner = runner
        self.available = available
        self.prober = prober

    def _run(
        self,
        step: str,
        candidates: Sequence[RenderCandidate],
        output: Path,
        cancel: Optional[threading.Event] = None,
    ) -> StepResult:
        return run_candidates(
            step, candidates, output,
            runner=self.runner, timeout=self.cfg.ffmpeg_command_timeout_s, cancel=cancel,
        )

    def build_visuals(
        self, product: ProductRecord, work: Path, cancel: Optional[threading.Event] = None,
    ) -> List[Path]:
        visuals = []
        for style in VISUAL_STYLES:
            out = work / f"visual_{style.name}.png"
            caption = sanitize_overlay_text(style.caption or product.title)
            self._run(f"visual:{style.name}", visual_candidates(style, caption, out, self.cfg), out, cancel)
            visuals.append(out)
        return visuals

    def build_clips(
        self,
        script: ScriptRecord,
        visuals: Sequence[Path],
        work: Path,
        cancel: Optional[threading.Event] = None,
    ) -> List[Path]:
        clips = []
        for i, scene in enumerate(script.scenes):
            out = work / f"scene_{i:03d}.mp4"
            text = sanitize_overlay_text(scene.text)
            visual = visuals[i % len(visuals)]
            self._run(f"clip:{i}:{scene.type}", clip_candidates(scene, text, visual, out, self.cfg), out, cancel)
            clips.append(out)
        return clips

    def join_clips(
        self, clips: Sequence[Path], out: Path, work: Path, cancel: Optional[threading.Event] = None,
    ) -> Path:
        if len(clips) == 1:
            shutil.copyfile(clips[0], out)
            return out
        list_path = write_concat_list(clips, work / "concat_list.txt")
        self._run("concat", concat_candidates(clips, list_path, out), out, cancel)
        return out

    def compose(
        self,
        product: ProductRecord,
        script: ScriptRecord,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> VideoArtifact:
        """Render the script to <output_dir>/<video_id>.mp4.

        Raises RendererUnavailable if ffmpeg is missing, RenderFailure when
        a step exhausts its candidates or `cancel` is set. `cancel` is
        honoured before every ffmpeg command and once more right before
        publishing. No file reaches the output dir unless every step
        succeeded.
        """
        if not self.available():
            raise RendererUnavailable("ffmpeg is not available. Install ffmpeg to generate videos.")
        if not script.scenes:
            raise RenderFailure("EMPTY_SCRIPT", "script has no scenes", step="compose")

        self.cfg.temp_dir.mkdir(parents=True, exist_ok=True)
        video_id = new_artifact_id("video")
        log.info("composing %s: %d scene(s), %ss", video_id, len(script.scenes), script.total_duration)

        with scratch_workspace(self.cfg.temp_dir, video_id) as work:
            visuals = self.build_visuals(product, work, cancel)
            clips = self.build_clips(script, visuals, work, cancel)
            staged = self.join_clips(clips, work / f"{video_id}.mp4", work, cancel)
            probed = self.prober(staged)
            if probed is not None and abs(probed - script.total_duration) > DURATION_TOLERANCE_SEC:
                log.warning("%s: probed duration %.2fs differs from script %ss",
                            video_id, probed, script.total_duration)
            size = staged.stat().st_size
            _check_cancel(cancel, "publish")
            final = publish_file(staged, self.cfg.output_dir / staged.name)

        return VideoArtifact(
            id=video_id,
            file_path=final,
            duration=script.total_duration,
            file_size_bytes=size,
            metadata={
                "productTitle": product.title,
                "script": script.title,
                "createdAt": utc_now_iso(),
                "quality": QUALITY_TAG,
            },
        )
