"""Flask API for linkrisk.

Run: python -m linkrisk.api
"""

import os
import logging
from flask import Flask, request, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import redis as redis_lib

from linkrisk import __version__
from linkrisk.normalizer import InvalidURL
from linkrisk.scanner import scan_url

# Logging
LOG_LEVEL = os.getenv("LINKRISK_LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("api")

# Flask app
app = Flask(__name__)

DEFAULT_LIMITS = os.getenv("LINKRISK_DEFAULT_LIMITS", "60 per minute")
SCAN_LIMIT = os.getenv("LINKRISK_SCAN_LIMIT", "30 per minute")


def _build_limiter(flask_app: Flask) -> Limiter:
    # Prefer Redis storage in production when REDIS_URL is set and reachable
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        try:
            redis_lib.from_url(redis_url).ping()
            logger.info("Using Redis at %s for rate limiting", redis_url)
            return Limiter(app=flask_app, key_func=get_remote_address,
                           default_limits=[DEFAULT_LIMITS], storage_uri=redis_url)
        except (redis_lib.RedisError, ValueError):
            logger.exception("Failed to connect to Redis, falling back to in-memory limiter")
    return Limiter(app=flask_app, key_func=get_remote_address, default_limits=[DEFAULT_LIMITS])


limiter = _build_limiter(app)


@app.errorhandler(405)
def method_not_allowed(e):
    return jsonify({"error": "Method not allowed"}), 405


@app.errorhandler(429)
def rate_limited(e):
    return jsonify({"error": "rate_limited", "detail": str(e.description)}), 429


@app.route("/health", methods=["GET"])
@limiter.exempt
def health():
    return jsonify({"status": "ok", "version": __version__})


@app.route("/scan", methods=["POST"])
@limiter.limit(SCAN_LIMIT)
def scan():
    data = request.get_json(silent=True)
    url = data.get("url") if isinstance(data, dict) else None
    if not url or not isinstance(url, str):
        return jsonify({"error": "Missing URL"}), 400

    try:
        result = scan_url(url)
    except InvalidURL as e:
        logger.info("Rejected URL %r: %s", url, e)
        return jsonify({"error": "Invalid URL format"}), 400
    except Exception:
        logger.exception("Scanner failed for %r", url)
        return jsonify({"error": "Internal error"}), 500

    return jsonify(result.to_dict()), 200


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5050)), debug=False)
