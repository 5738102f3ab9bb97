"""Thin CLI entry point — builds a Manifest and calls the engine."""

import argparse
import logging
import sys
from pathlib import Path

from audiosnip.analyzers.retention import MODES
from audiosnip.engine import process
from audiosnip.errors import AudioSnipError
from audiosnip.manifest import CutConfig, Manifest, load_manifest
from audiosnip.models import TimeRange


def parse_range(text: str) -> TimeRange:
    """Parse ``START:END`` (seconds) into a TimeRange."""
    try:
        start, end = text.split(":")
        return TimeRange(start=float(start), end=float(end))
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid range {text!r}; expected START:END in seconds"
        ) from None


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="audiosnip",
        description="AudioSnip — remove time ranges from an audio file and stitch the rest.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    cut = sub.add_parser("cut", help="Cut ranges out of an audio file")
    cut.add_argument("audio", nargs="?", type=Path, help="Input audio file")
    cut.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    cut.add_argument("--output", "-o", type=Path, help="Output file path")
    cut.add_argument(
        "--delete", "-d", type=parse_range, action="append", default=[],
        metavar="START:END", help="Range to remove, in seconds (repeatable)",
    )
    cut.add_argument("--mode", choices=MODES, default="merged", help="How deletions are resolved")
    cut.add_argument("--allow-empty", action="store_true", help="Write an empty file if nothing is kept")
    cut.add_argument("--timeout", type=float, default=300.0, help="Per ffmpeg call timeout (seconds)")
    cut.add_argument("--jobs", "-j", type=int, default=4, help="Parallel clip extractions")
    cut.add_argument("--audio-codec", type=str, default=None, help="Encoder for extracted clips")

    serve = sub.add_parser("serve", help="Launch the HTTP service")
    serve.add_argument("--port", type=int, default=5000, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    serve.add_argument("--work-dir", type=Path, default=None, help="Scratch directory root")
    serve.add_argument("--mode", choices=MODES, default="merged", help="Default resolve mode")
    serve.add_argument("--timeout", type=float, default=300.0, help="Per ffmpeg call timeout (seconds)")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from audiosnip.web import create_app
        try:
            app = create_app(
                work_dir=args.work_dir,
                cut_config=CutConfig(mode=args.mode, timeout=args.timeout),
            )
        except AudioSnipError as e:
            print(f"Error ({e.kind}): {e}", file=sys.stderr)
            sys.exit(2)
        print(f"AudioSnip service: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        if args.manifest:
            try:
                m = load_manifest(args.manifest)
            except (OSError, ValueError) as e:
                print(f"Error: could not read manifest {args.manifest}: {e}", file=sys.stderr)
                sys.exit(1)
        elif args.audio:
            output = args.output or args.audio.with_stem(args.audio.stem + "_cut")
            m = Manifest(
                input=args.audio,
                output=output,
                deletions=args.delete,
                cut=CutConfig(
                    mode=args.mode,
                    allow_empty=args.allow_empty,
                    timeout=args.timeout,
                    max_workers=args.jobs,
                    audio_codec=args.audio_codec,
                ),
            )
        else:
            print("Error: provide either an AUDIO argument or --manifest.", file=sys.stderr)
            sys.exit(1)

        result = process(m, on_progress=on_progress)
    except AudioSnipError as e:
        print(f"Error ({e.kind}): {e}", file=sys.stderr)
        sys.exit(2)

    print()
    print(f"Done! Output: {result.output_path}")
    print(f"  Duration: {result.duration_original:.1f}s -> {result.duration_final:.1f}s")
    print(f"  Segments kept: {result.segments_kept}")
    if result.segments_removed:
        print(f"  Ranges removed: {result.segments_removed} ({result.duration_removed:.1f}s)")
