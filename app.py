"""
Reel Pipeline Service - Long-form video to short 9:16 reels with AI highlights and subtitles.
Port: 6004
"""
import asyncio
import sys
import threading
from datetime import datetime, timezone
from typing import Any, Coroutine, Optional, TypeVar

from flask import Flask, jsonify, request
from loguru import logger

from config import PRESETS, SERVICE_NAME, SERVICE_VERSION, SUBTITLE_FORMATS, SUBTITLE_STYLES, get_settings
from config.settings import SERVICE_PORT
from services.repurpose.pipeline import ReelPipeline
from shared.errors import InvalidInput
from shared.models import ReelRequest

app = Flask(__name__)

settings = get_settings()
logger.remove()
logger.add(sys.stderr, level=settings.log_level)

_pipeline: Optional[ReelPipeline] = None
_loop: Optional[asyncio.AbstractEventLoop] = None
_loop_lock = threading.Lock()
_pipeline_lock = threading.Lock()

T = TypeVar("T")


def get_loop() -> asyncio.AbstractEventLoop:
    """
    Event loop shared by every request, running in a daemon thread.

    The pipeline and its AsyncOpenAI connection pool live for the whole
    process, so their coroutines must always run on the same loop.
    """
    global _loop
    with _loop_lock:
        if _loop is None:
            _loop = asyncio.new_event_loop()
            threading.Thread(target=_loop.run_forever, name="reel-pipeline-loop", daemon=True).start()
    return _loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on the shared loop and wait for its result."""
    return asyncio.run_coroutine_threadsafe(coro, get_loop()).result()


def get_pipeline() -> ReelPipeline:
    """Get the process-wide pipeline, building it on first use."""
    global _pipeline
    with _pipeline_lock:
        if _pipeline is None:
            _pipeline = ReelPipeline.from_settings(settings)
    return _pipeline


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@app.route("/api/presets", methods=["GET"])
def list_presets():
    """Quick presets plus the accepted subtitle styles and formats."""
    return jsonify({
        "presets": PRESETS,
        "subtitle_styles": SUBTITLE_STYLES,
        "subtitle_formats": SUBTITLE_FORMATS,
    })


@app.route("/api/reels", methods=["POST"])
def create_reels():
    """Run one reel session for a YouTube URL."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "JSON body required"}), 400

    try:
        reel_request = ReelRequest.from_dict(data)
        result = run_async(get_pipeline().run(reel_request))
    except InvalidInput as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except Exception as e:
        logger.exception("Reel session failed")
        return jsonify({"success": False, "error": str(e)}), 500

    return jsonify(result.to_dict())


if __name__ == "__main__":
    logger.info(f"🚀 {SERVICE_NAME} starting on port {SERVICE_PORT}")
    app.run(host="0.0.0.0", port=SERVICE_PORT, debug=False)
