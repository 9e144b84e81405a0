"""Thin CLI entry point — builds a Manifest and calls the engine."""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from wellcut import ffutil
from wellcut.analyzers.silence import content_intervals, detect_silence
from wellcut.analyzers.stats import compute_stats, find_peaks
from wellcut.engine import process
from wellcut.errors import WellcutError
from wellcut.manifest import (
    DetectionConfig,
    ExportConfig,
    Manifest,
    ProcessingOptions,
    load_manifest,
)


def _add_detection_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--silence-threshold", type=float, default=-50.0, help="Silence threshold in dB")
    p.add_argument("--silence-min-duration", type=float, default=0.5, help="Minimum silence duration (seconds)")
    p.add_argument("--window", type=float, default=0.05, help="Analysis window (seconds)")
    p.add_argument("--min-content", type=float, default=1.0, help="Drop content shorter than this (seconds)")
    p.add_argument("--padding", type=float, default=0.0, help="Extend each clip into the surrounding silence (seconds)")


def _analyze(args: argparse.Namespace) -> None:
    ffutil.check_ffmpeg()
    source = ffutil.decode_audio(args.audio)
    silences = detect_silence(
        source.channel(0),
        source.sample_rate,
        threshold_db=args.silence_threshold,
        min_duration=args.silence_min_duration,
        window=args.window,
    )
    contents = content_intervals(silences, source.duration, args.min_content, args.padding)
    stats = [compute_stats(source.channel(c)) for c in range(source.channels)]
    peaks = find_peaks(source.channel(0), source.sample_rate)

    if args.json:
        print(json.dumps({
            "duration": source.duration,
            "sample_rate": source.sample_rate,
            "channels": source.channels,
            "silences": [{"start": s.start, "end": s.end} for s in silences],
            "contents": [{"start": c.start, "end": c.end} for c in contents],
            "stats": [asdict(s) for s in stats],
            "peak_count": len(peaks),
        }, indent=2))
        return

    print(f"{args.audio}: {source.duration:.2f}s, {source.sample_rate} Hz, {source.channels} ch")
    for c, s in enumerate(stats):
        print(f"  ch{c}: rms {s.db_fs:.1f} dBFS, peak {s.max:.3f}/{s.min:.3f}, crest {s.crest:.2f}")
    print(f"  Peaks above 0.3: {len(peaks)}")
    print(f"  Silences ({len(silences)}):")
    for s in silences:
        print(f"    {s.start:8.2f} - {s.end:8.2f}")
    print(f"  Content ({len(contents)}):")
    for c in contents:
        print(f"    {c.start:8.2f} - {c.end:8.2f}")


def _build_manifest(args: argparse.Namespace) -> Manifest:
    if args.manifest:
        return load_manifest(args.manifest)

    output = args.output or args.audio.with_name(args.audio.stem + "_clips")
    defaults = ProcessingOptions.defaults()
    options = ProcessingOptions(
        fade_in=args.fade_in,
        fade_out=args.fade_out,
        noise_reduction=args.noise_reduction if args.noise_reduction > 0 else None,
        normalize=not args.no_normalize,
        normalize_target=args.normalize_target,
        quality=args.quality,
        equalizer_bands=defaults.equalizer_bands,
    )
    return Manifest(
        input=args.audio,
        output=output,
        detection=DetectionConfig(
            threshold_db=args.silence_threshold,
            min_duration=args.silence_min_duration,
            window=args.window,
            min_content=args.min_content,
            padding=args.padding,
        ),
        processing=options.validate(),
        export=ExportConfig(format=args.format),
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="wellcut",
        description="WellCut — split audio on silence, clean up and export the clips.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    ana = sub.add_parser("analyze", help="Report silence, content and loudness")
    ana.add_argument("audio", type=Path, help="Input audio or video file")
    ana.add_argument("--json", action="store_true", help="Print JSON instead of text")
    _add_detection_args(ana)

    proc = sub.add_parser("process", help="Render content clips with the effect chain")
    proc.add_argument("audio", nargs="?", type=Path, help="Input audio or video file")
    proc.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    proc.add_argument("--output", "-o", type=Path, help="Output directory")
    _add_detection_args(proc)
    proc.add_argument("--fade-in", type=float, default=0.2, help="Fade-in length (seconds)")
    proc.add_argument("--fade-out", type=float, default=0.2, help="Fade-out length (seconds)")
    proc.add_argument("--noise-reduction", type=float, default=0.3, help="Noise reduction amount 0-1")
    proc.add_argument("--no-normalize", action="store_true", help="Skip peak normalization")
    proc.add_argument("--normalize-target", type=float, default=-3.0, help="Normalization target (dB)")
    proc.add_argument("--format", choices=["wav", "mp3", "ogg", "flac", "m4a"], default="wav",
                      help="Output format (non-WAV falls back to WAV)")
    proc.add_argument("--quality", type=float, default=0.8, help="Export quality 0.1-1.0")
    proc.add_argument("--keep-going", action="store_true", help="Continue past failing clips")

    serve = sub.add_parser("serve", help="Launch the HTTP API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from wellcut.web import create_app
        app = create_app()
        print(f"WellCut API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    try:
        if args.command == "analyze":
            _analyze(args)
            return

        if not args.manifest and not args.audio:
            print("Error: provide either an AUDIO argument or --manifest.", file=sys.stderr)
            sys.exit(1)

        m = _build_manifest(args)

        def on_progress(stage: str, frac: float) -> None:
            print(f"  [{frac:3.0%}] {stage}")

        result = process(m, on_progress=on_progress, fail_fast=not args.keep_going)
    except WellcutError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)

    report = result.report
    print()
    print(f"Done! Output: {result.output_dir}")
    print(f"  Clips: {len(result.clip_paths)}/{report.total_clips}")
    print(f"  Duration: {report.total_duration:.1f}s -> {report.processed_duration:.1f}s kept")
    print(f"  Processing time: {report.processing_time_ms:.0f} ms")
    if result.fallback:
        print(f"  Note: {result.fallback.reason}")
    for f in result.failures:
        print(f"  Failed clip {f.index + 1}: {f.error}")
    print(f"  Report: {result.report_path}")
