"""adreel CLI.

Subcommands:
    run      URL -> video (prints the result, or progress lines with --stream)
    scrape   URL -> product data only
    script   URL -> product data + script (no rendering)
    serve    Start the HTTP API

Exit codes:
    0 = OK
    1 = render failure / timeout
    2 = invalid input
    3 = renderer unavailable / unexpected error

Usage:
    python3 -m adreel run https://example-shop.myshopify.com/products/vital-leggings
    python3 -m adreel run URL --stream
    python3 -m adreel script URL --json
    python3 -m adreel serve --port 3001
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict

from adreel.browser import close_shared_session
from adreel.config import AppConfig, load_config
from adreel.errors import AdreelError, InputValidationError, RendererUnavailable
from adreel.logs import setup_logging
from adreel.pipeline import Pipeline, Stage


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INPUT = 2
EXIT_ERROR = 3


def _print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def _cmd_run(pipe: Pipeline, args: argparse.Namespace) -> int:
    if not args.stream:
        result = await pipe.run_atomic(args.url)
        if args.json:
            _print_json(result.to_dict())
        else:
            print(f"[adreel] {result.product.title}: {result.video.file_path} "
                  f"({result.video.duration}s, {result.video.file_size_bytes} bytes)")
        return EXIT_OK

    code = EXIT_FAILED
    async for event in pipe.stream(args.url):
        if args.json:
            print(json.dumps(event.to_dict(), ensure_ascii=False), flush=True)
        elif event.step is Stage.ERROR:
            print(f"[{event.progress:3d}%] error: {event.error}", file=sys.stderr, flush=True)
        else:
            print(f"[{event.progress:3d}%] {event.step.value}: {event.message}", flush=True)
        if event.step is Stage.COMPLETE:
            code = EXIT_OK
            if not args.json and event.result is not None:
                print(f"[adreel] video: {event.result.video.file_path}")
    return code


async def _cmd_scrape(pipe: Pipeline, args: argparse.Namespace) -> int:
    product = await pipe.extract_only(args.url)
    _print_json(product.to_dict())
    return EXIT_OK


async def _cmd_script(pipe: Pipeline, args: argparse.Namespace) -> int:
    product = await pipe.extract_only(args.url)
    script = await pipe.script_only(product)
    if args.alternative:
        script = await pipe.alternative_only(product, script)
    if args.json:
        _print_json({"productData": product.to_dict(), "script": script.to_dict()})
    else:
        print(f"{script.title} ({script.total_duration}s, music={script.background_music})")
        for scene in script.scenes:
            print(f"  {scene.start_time:>2}-{scene.end_time:<2}s {scene.type:<17} {scene.text}")
    return EXIT_OK


_ASYNC_COMMANDS = {
    "run": _cmd_run,
    "scrape": _cmd_scrape,
    "script": _cmd_script,
}


async def _dispatch(cfg: AppConfig, args: argparse.Namespace) -> int:
    pipe = Pipeline(cfg)
    try:
        return await _ASYNC_COMMANDS[args.cmd](pipe, args)
    finally:
        await close_shared_session()
        pipe.close()


# ---------------------------------------------------------------------------
# CLI parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="adreel",
        description="Turn a product page URL into a short video advertisement",
    )
    sub = p.add_subparsers(dest="cmd")

    r = sub.add_parser("run", help="Scrape, script and render a video")
    r.add_argument("url")
    r.add_argument("--stream", action="store_true", help="Print progress events as they happen")
    r.add_argument("--json", action="store_true", help="Machine-readable output")

    s = sub.add_parser("scrape", help="Extract product data only")
    s.add_argument("url")

    sc = sub.add_parser("script", help="Extract product data and write a script")
    sc.add_argument("url")
    sc.add_argument("--alternative", action="store_true",
                    help="Also generate an alternative script and print that instead")
    sc.add_argument("--json", action="store_true", help="Machine-readable output")

    sv = sub.add_parser("serve", help="Start the HTTP API")
    sv.add_argument("--host", default="")
    sv.add_argument("--port", type=int, default=0)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return EXIT_ERROR

    cfg = load_config()
    setup_logging(cfg.log_level, cfg.log_dir)

    if args.cmd == "serve":
        from adreel.server import serve

        return serve(cfg, host=args.host or cfg.host, port=args.port or cfg.port)

    cfg.ensure_dirs()
    try:
        return asyncio.run(_dispatch(cfg, args))
    except InputValidationError as exc:
        print(f"[adreel] invalid input: {exc}", file=sys.stderr)
        return EXIT_INPUT
    except RendererUnavailable as exc:
        print(f"[adreel] {exc.message}", file=sys.stderr)
        return EXIT_ERROR
    except AdreelError as exc:
        print(f"[adreel] {exc.code}: {exc.message}", file=sys.stderr)
        return EXIT_FAILED
    except KeyboardInterrupt:
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
