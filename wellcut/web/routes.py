"""HTTP routes: analyze an uploaded WAV, or render one range of it."""

import asyncio
import json
from dataclasses import asdict

from flask import Blueprint, Response, jsonify, request

from wellcut.analyzers.silence import content_intervals, detect_silence
from wellcut.analyzers.stats import compute_stats
from wellcut.encoder import decode_wav
from wellcut.errors import InputError
from wellcut.manifest import ProcessingOptions, parse_options
from wellcut.models import TimeRange, Waveform
from wellcut.render import render_clip

bp = Blueprint("api", __name__)


def _uploaded_waveform() -> Waveform | tuple[Response, int]:
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400
    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400
    return decode_wav(f.read())


def _float_field(name: str, default: float | None = None) -> float:
    raw = request.form.get(name)
    if raw is None:
        if default is None:
            raise InputError(f"Missing form field '{name}'")
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise InputError(f"Form field '{name}' must be a number, got {raw!r}") from e


@bp.route("/api/analyze", methods=["POST"])
def analyze():
    source = _uploaded_waveform()
    if not isinstance(source, Waveform):
        return source

    threshold_db = _float_field("threshold_db", -50.0)
    min_duration = _float_field("min_duration", 0.5)
    silences = detect_silence(
        source.channel(0), source.sample_rate, threshold_db=threshold_db, min_duration=min_duration
    )
    contents = content_intervals(
        silences, source.duration, _float_field("min_content", 1.0), _float_field("padding", 0.0)
    )

    return jsonify({
        "duration": source.duration,
        "sample_rate": source.sample_rate,
        "channels": source.channels,
        "silences": [asdict(s) for s in silences],
        "contents": [asdict(c) for c in contents],
        "stats": [asdict(compute_stats(source.channel(c))) for c in range(source.channels)],
    })


@bp.route("/api/render", methods=["POST"])
def render():
    source = _uploaded_waveform()
    if not isinstance(source, Waveform):
        return source

    time_range = TimeRange(start=_float_field("start"), end=_float_field("end"))
    fmt = request.form.get("format", "wav")
    raw_options = request.form.get("options")
    if raw_options:
        try:
            options = parse_options(json.loads(raw_options))
        except (json.JSONDecodeError, TypeError) as e:
            raise InputError(f"Invalid options: {e}") from e
    else:
        options = ProcessingOptions.defaults()

    rendered = asyncio.run(render_clip(source, time_range, options, fmt))
    clip = rendered.encoded

    resp = Response(clip.data, mimetype=clip.mime_type)
    resp.headers["X-Requested-Format"] = clip.requested_format
    if clip.fallback:
        resp.headers["X-Format-Fallback"] = clip.fallback.reason
    if clip.bitrate_kbps:
        resp.headers["X-Bitrate-Kbps"] = str(clip.bitrate_kbps)
    return resp
