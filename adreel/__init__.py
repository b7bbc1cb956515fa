"""adreel: product page URL -> short vertical video advertisement.

Stages: extraction (browser scrape with synthetic fallback), heuristic
script synthesis, ffmpeg scene composition, coordinated by the pipeline.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
