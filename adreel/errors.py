"""Error taxonomy for the adreel pipeline.

ExtractionFailure and ScriptValidationFailure never leave their stage:
the extractor downgrades to synthetic data and the script engine to its
fixed fallback script. The rest propagate to callers.
"""

from __future__ import annotations


class AdreelError(RuntimeError):
    """Structured failure with a machine-readable code."""

    code = "ADREEL_ERROR"

    def __init__(self, message: str, *, code: str = ""):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ExtractionFailure(AdreelError):
    code = "EXTRACTION_FAILED"


class ScriptValidationFailure(AdreelError):
    code = "SCRIPT_INVALID"


class RenderFailure(AdreelError):
    """A render step exhausted every candidate command."""

    code = "RENDER_FAILED"

    def __init__(self, code: str, message: str, *, step: str = ""):
        super().__init__(message, code=code)
        self.step = step


class RendererUnavailable(AdreelError):
    code = "RENDERER_UNAVAILABLE"


class PipelineTimeout(AdreelError):
    code = "TIMEOUT"

    def __init__(self, stage: str, timeout_s: float):
        super().__init__(f"{stage} timed out after {timeout_s:g}s")
        self.stage = stage
        self.timeout_s = timeout_s


class InputValidationError(ValueError):
    """Raised on malformed caller input, before any stage runs."""
