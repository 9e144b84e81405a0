"""Orchestrator: batch renders clips and runs the pipeline defined by a Manifest."""

import asyncio
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from wellcut import ffutil
from wellcut.analyzers.silence import content_intervals, detect_silence
from wellcut.analyzers.stats import clip_stat
from wellcut.encoder import EncodedClip, FormatFallback
from wellcut.errors import BatchAbort, WellcutError
from wellcut.graph import RenderContext
from wellcut.manifest import Manifest, ProcessingOptions
from wellcut.models import ClipStat, ProcessingReport, TimeRange, Waveform
from wellcut.render import render_clip

logger = logging.getLogger(__name__)


@dataclass
class ClipFailure:
    index: int
    time_range: TimeRange
    error: WellcutError


@dataclass
class BatchResult:
    outputs: list[EncodedClip]
    report: ProcessingReport
    failures: list[ClipFailure] = field(default_factory=list)


@dataclass
class EngineResult:
    output_dir: Path
    report: ProcessingReport
    clip_paths: list[Path] = field(default_factory=list)
    report_path: Path | None = None
    silences: list[TimeRange] = field(default_factory=list)
    failures: list[ClipFailure] = field(default_factory=list)
    fallback: FormatFallback | None = None


async def process_clips(
    source: Waveform,
    ranges: list[TimeRange],
    options: ProcessingOptions,
    fmt: str = "wav",
    on_progress: Callable[[int, int], None] | None = None,
    fail_fast: bool = True,
    cancel: threading.Event | None = None,
) -> BatchResult:
    """Render and encode each range in order, one at a time.

    Args:
        source: Shared source audio; read-only.
        ranges: Time ranges to render, processed in list order.
        options: Effect settings shared by every clip.
        fmt: Requested output format.
        on_progress: Optional callback(index, total), called before each clip
            and once more with (total, total) at the end.
        fail_fast: Abort on the first failing clip (BatchAbort, no outputs).
            When False, failures are collected and the rest still render.
        cancel: Checked between clips; when set the batch aborts.
    """
    total = len(ranges)
    started = time.perf_counter()
    outputs: list[EncodedClip] = []
    clips: list[ClipStat] = []
    failures: list[ClipFailure] = []
    processed = 0.0

    for index, time_range in enumerate(ranges):
        if cancel is not None and cancel.is_set():
            raise BatchAbort(f"Batch cancelled before clip {index + 1}/{total}", index, time_range)
        if on_progress:
            on_progress(index, total)

        # fresh context per clip; nothing carries over between renders
        context = RenderContext.for_waveform(source)
        try:
            rendered = await render_clip(source, time_range, options, fmt, context=context)
        except WellcutError as err:
            if fail_fast:
                logger.error("Clip %d/%d failed, aborting batch: %s", index + 1, total, err)
                raise BatchAbort(
                    f"Clip {index + 1}/{total} failed: {err}", index, time_range
                ) from err
            logger.warning("Clip %d/%d failed: %s", index + 1, total, err)
            failures.append(ClipFailure(index=index, time_range=time_range, error=err))
            continue

        outputs.append(rendered.encoded)
        clips.append(clip_stat(source, time_range))
        processed += time_range.duration
        logger.info(
            "Clip %d/%d rendered (%.2f-%.2fs, %d bytes)",
            index + 1, total, time_range.start, time_range.end, len(rendered.encoded.data),
        )

    if on_progress:
        on_progress(total, total)

    report = ProcessingReport(
        total_clips=total,
        total_duration=source.duration,
        processed_duration=processed,
        processing_time_ms=(time.perf_counter() - started) * 1000.0,
        clips=tuple(clips),
    )
    return BatchResult(outputs=outputs, report=report, failures=failures)


def run_batch(
    source: Waveform,
    ranges: list[TimeRange],
    options: ProcessingOptions,
    fmt: str = "wav",
    on_progress: Callable[[int, int], None] | None = None,
    fail_fast: bool = True,
    cancel: threading.Event | None = None,
) -> BatchResult:
    """Synchronous wrapper around process_clips."""
    return asyncio.run(
        process_clips(source, ranges, options, fmt, on_progress, fail_fast, cancel)
    )


def process(
    manifest: Manifest,
    on_progress: Callable[[str, float], None] | None = None,
    fail_fast: bool = True,
) -> EngineResult:
    """Execute the full pipeline: decode, find content, render clips, write report.

    Args:
        manifest: Validated processing manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
        fail_fast: Passed through to the batch; see process_clips.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    ffutil.check_ffmpeg()

    _progress("Decoding audio", 0.0)
    source = ffutil.decode_audio(manifest.input)
    _progress("Decoding audio", 0.10)

    silences: list[TimeRange] = []
    if manifest.ranges is not None:
        ranges = manifest.ranges
    else:
        _progress("Scanning audio for silence", 0.12)
        det = manifest.detection
        silences = detect_silence(
            source.channel(0),
            source.sample_rate,
            threshold_db=det.threshold_db,
            min_duration=det.min_duration,
            window=det.window,
        )
        ranges = content_intervals(silences, source.duration, det.min_content, det.padding)
        _progress(f"Found {len(ranges)} content segments", 0.20)

    def _clip_progress(index: int, total: int) -> None:
        frac = 0.20 + 0.70 * (index / total if total else 1.0)
        if index < total:
            _progress(f"Rendering clip {index + 1}/{total}", frac)
        else:
            _progress("Rendering complete", frac)

    batch = run_batch(
        source,
        ranges,
        manifest.processing,
        fmt=manifest.export.format,
        on_progress=_clip_progress,
        fail_fast=fail_fast,
    )

    # --- Write outputs ---
    _progress("Writing output files", 0.92)
    out_dir = manifest.output
    out_dir.mkdir(parents=True, exist_ok=True)

    failed = {f.index for f in batch.failures}
    ok_indices = [i for i in range(len(ranges)) if i not in failed]
    clip_paths: list[Path] = []
    for index, clip in zip(ok_indices, batch.outputs):
        path = out_dir / f"clip_{index + 1:03d}.{clip.extension}"
        path.write_bytes(clip.data)
        clip_paths.append(path)

    report_data = batch.report.to_dict()
    report_data["failures"] = [
        {"index": f.index, "start": f.time_range.start, "end": f.time_range.end,
         "error": str(f.error)}
        for f in batch.failures
    ]
    report_path = out_dir / "report.json"
    report_path.write_text(json.dumps(report_data, indent=2))

    _progress("Done", 1.0)
    return EngineResult(
        output_dir=out_dir,
        report=batch.report,
        clip_paths=clip_paths,
        report_path=report_path,
        silences=silences,
        failures=batch.failures,
        fallback=batch.outputs[0].fallback if batch.outputs else None,
    )
