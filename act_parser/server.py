"""
HTTP Microservice
=================
Flask-based HTTP API for the ACT parser engine.

Endpoints:
    POST   /api/parse              → Parse an uploaded PDF synchronously
    GET    /api/detect?filename=   → Format detection for a filename
    GET    /api/health             → Health check
    GET    /api/info               → Parser version info

`POST /api/parse` takes multipart/form-data:
    file:    the PDF (required)
    format:  enhanced | classic | other | auto (optional)
    name:    test name for the bundle (optional, defaults to the file stem)
    bundle:  "1"/"true" to include the storable test bundle (optional)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import __version__
from .bundle import build_bundle
from .config import ParserConfig
from .detector import detect_format
from .engine import ParserEngine
from .exceptions import DocumentDecodeError, UnsupportedFormatError
from .models import FormatVariant, Subject

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB

_TRUE_VALUES = {"1", "true", "yes", "on"}


def create_app(
    config: Optional[dict] = None,
    parser_config: Optional[ParserConfig] = None,
) -> Flask:
    """Create and configure the Flask app."""
    app = Flask(__name__)
    CORS(app)

    app.config["MAX_CONTENT_LENGTH"] = DEFAULT_MAX_CONTENT_LENGTH
    if config:
        app.config.update(config)

    engine = ParserEngine(parser_config)

    # ─── Health Check ─────────────────────────────────────────────────

    @app.route("/api/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "act-parser",
            "version": __version__,
        })

    @app.route("/api/info", methods=["GET"])
    def info():
        """Parser version and capability info."""
        return jsonify({
            "version": __version__,
            "engine": "PyMuPDF",
            "formats": [v.value for v in FormatVariant],
            "subjects": [s.value for s in Subject],
            "capabilities": [
                "format_detection",
                "question_segmentation",
                "answer_keys",
                "page_mapping",
                "test_bundle",
            ],
            "max_upload_bytes": app.config["MAX_CONTENT_LENGTH"],
        })

    # ─── Detection ────────────────────────────────────────────────────

    @app.route("/api/detect", methods=["GET"])
    def detect():
        """Format detection from a filename alone."""
        filename = request.args.get("filename", "").strip()
        if not filename:
            return jsonify({"error": "filename query parameter required"}), 400
        return jsonify(detect_format(filename).model_dump(mode="json"))

    # ─── Parse Endpoint ───────────────────────────────────────────────

    @app.route("/api/parse", methods=["POST"])
    def parse_pdf():
        """Parse an uploaded PDF and return the result immediately."""
        if "file" not in request.files:
            return jsonify({"error": "Provide a PDF as the 'file' upload"}), 400

        file = request.files["file"]
        if not file.filename:
            return jsonify({"error": "No file selected"}), 400

        data = file.read()
        format_override = request.form.get("format", "").strip().lower() or None
        if format_override == "auto":
            format_override = None

        try:
            result = engine.parse(data, file.filename, format_override)
        except UnsupportedFormatError as e:
            return jsonify({"error": str(e)}), 400
        except DocumentDecodeError as e:
            logger.warning(f"Decode failure for {file.filename}: {e}")
            return jsonify({"error": str(e)}), 422

        response = result.model_dump(mode="json")
        if request.form.get("bundle", "").strip().lower() in _TRUE_VALUES:
            name = request.form.get("name", "").strip() or Path(file.filename).stem
            response["bundle"] = build_bundle(result, name, data)
        return jsonify(response)

    @app.errorhandler(413)
    def too_large(e):
        limit = app.config["MAX_CONTENT_LENGTH"]
        return jsonify({
            "error": f"Upload exceeds the {limit} byte limit",
        }), 413

    return app


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
    parser_config: Optional[ParserConfig] = None,
):
    """Start the microservice server."""
    app = create_app(parser_config=parser_config)
    logger.info(f"Starting server on {host}:{port}")
    app.run(host=host, port=port, debug=debug)
