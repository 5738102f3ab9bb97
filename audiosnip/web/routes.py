"""HTTP routes for AudioSnip."""

import logging
import mimetypes
from contextlib import ExitStack
from dataclasses import replace

from flask import Blueprint, Response, current_app, jsonify, request

from audiosnip.analyzers.retention import MODES
from audiosnip.engine import container_suffix, cut_session
from audiosnip.errors import DeliveryError, InputMissingError, InvalidTimelineError
from audiosnip.manifest import parse_timelines
from audiosnip.workspace import Workspace

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__)

CHUNK_SIZE = 64 * 1024


@bp.route("/")
def index():
    return jsonify({"service": "audiosnip", "status": "ok"})


@bp.route("/cut-audio", methods=["POST"])
def cut_audio():
    f = request.files.get("audio")
    raw_timelines = request.form.get("timelines")
    if f is None or not f.filename or raw_timelines is None:
        raise InputMissingError("Audio file or timeline is missing.")

    deletions = parse_timelines(raw_timelines)

    config = current_app.config["CUT_CONFIG"]
    mode = request.form.get("mode")
    if mode:
        if mode not in MODES:
            raise InvalidTimelineError(f"Unknown mode {mode!r}; expected one of {MODES}")
        config = replace(config, mode=mode)

    ext = container_suffix(f.filename)

    # Everything below lives until the response body has been streamed
    stack = ExitStack()
    try:
        workspace = stack.enter_context(Workspace(current_app.config["WORK_DIR"]))
        source = workspace.path(f"source{ext}")
        f.save(source)

        result = stack.enter_context(
            cut_session(
                source,
                deletions,
                config=config,
                backend=current_app.config["MEDIA_BACKEND"],
                workspace=workspace,
            )
        )
        try:
            fh = stack.enter_context(result.output_path.open("rb"))
            size = result.output_path.stat().st_size
        except OSError as e:
            err = DeliveryError(f"Error downloading the file: {e}")
            result.fail(err)
            raise err from e
    except BaseException:
        stack.close()
        raise

    def generate():
        try:
            while True:
                chunk = fh.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        except OSError as e:
            # Headers are already sent; all that is left is to record it
            err = DeliveryError(f"Error downloading the file: {e}")
            result.fail(err)
            logger.error("[%s] %s", result.scope_id, err)
        finally:
            stack.close()

    download_name = f"Audio{ext}"
    resp = Response(
        generate(),
        mimetype=mimetypes.guess_type(download_name)[0] or "application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{download_name}"',
            "Content-Length": str(size),
            "X-Segments-Kept": str(result.segments_kept),
        },
    )
    resp.call_on_close(stack.close)
    return resp
