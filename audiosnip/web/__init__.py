"""Flask application factory for the AudioSnip HTTP service."""

import logging
import tempfile
from pathlib import Path

from flask import Flask, jsonify

from audiosnip import ffutil
from audiosnip.errors import AudioSnipError
from audiosnip.manifest import CutConfig
from audiosnip.models import MediaBackend

logger = logging.getLogger(__name__)


def create_app(
    work_dir: Path | None = None,
    cut_config: CutConfig | None = None,
    backend: MediaBackend | None = None,
) -> Flask:
    if backend is None:
        ffutil.check_ffmpeg()

    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir or Path(tempfile.mkdtemp(prefix="audiosnip_"))
    app.config["CUT_CONFIG"] = cut_config or CutConfig()
    app.config["MEDIA_BACKEND"] = backend
    app.config["MAX_CONTENT_LENGTH"] = 50 * 1024 * 1024  # 50 MB

    from audiosnip.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "File too large", "kind": "input_too_large"}), 413

    @app.errorhandler(AudioSnipError)
    def audiosnip_error(error: AudioSnipError):
        if error.status_code >= 500:
            logger.error("cut-audio failed (%s): %s", error.kind, error)
        else:
            logger.info("cut-audio rejected (%s): %s", error.kind, error)
        return jsonify({"error": str(error), "kind": error.kind}), error.status_code

    return app
