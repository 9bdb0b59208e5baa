#!/usr/bin/env python3
"""
A small portfolio site: poetry & prose by one author, reviews by anyone.

JSON API under /api, everything else falls through to the built
single-page bundle in DIST_DIR.
"""

###############################################################################
# Imports & constants
###############################################################################
import atexit
import os
import re
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path

import click
from flask import Flask, abort, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException
from werkzeug.security import safe_join

from folio.store import DEFAULT_RATING, ContentStore

ROOT = Path(__file__).parent
ENV_FILE = ROOT / ".env"

ADMIN_SECRET_DEFAULT = "jaxelricweb"
UPLOAD_MAX_BYTES = 32 * 1024 * 1024  # PDFs travel as base64 data URIs
INT_RE = re.compile(r"-?[0-9]+")
SQLITE_INT_MIN, SQLITE_INT_MAX = -(2**63), 2**63 - 1


def _read_env_file() -> dict[str, str]:
    env = {}
    if not ENV_FILE.exists():
        return env
    for ln in ENV_FILE.read_text().splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#") or "=" not in ln:
            continue
        k, v = ln.split("=", 1)
        env[k.strip()] = v.strip()
    return env


def env_setting(key: str, default: str) -> str:
    """Process env first, then the .env file, then *default*."""
    return os.environ.get(key) or _read_env_file().get(key) or default


DB_FILE = Path(env_setting("FOLIO_DB", str(ROOT / "literary.db")))
DIST_DIR = Path(env_setting("FOLIO_DIST", str(ROOT.parent / "dist")))
ADMIN_SECRET = env_setting("ADMIN_SECRET", ADMIN_SECRET_DEFAULT)
PORT = int(env_setting("PORT", "3000"))


###############################################################################
# App
###############################################################################
app = Flask(__name__, static_folder=None)
app.url_map.strict_slashes = False
app.json.sort_keys = False  # keep column order on the wire
app.config.update(
    DATABASE=str(DB_FILE),
    DIST_DIR=str(DIST_DIR),
    ADMIN_SECRET=ADMIN_SECRET,
    MAX_CONTENT_LENGTH=UPLOAD_MAX_BYTES,
)


###############################################################################
# Errors
###############################################################################
class ApiError(Exception):
    """Anything a handler wants to turn into ``{"error": ...}``."""

    status = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class Unauthorized(ApiError):
    status = 401
    message = "Unauthorized"


class ValidationError(ApiError):
    status = 400
    message = "Missing fields"


class NotFound(ApiError):
    status = 404
    message = "Not Found"


@app.errorhandler(ApiError)
def api_error(exc: ApiError):
    return jsonify(error=exc.message), exc.status


@app.errorhandler(HTTPException)
def http_error(exc: HTTPException):
    # redirects etc. are not errors
    if exc.code is None or exc.code < 400:
        return exc
    return jsonify(error=exc.name), exc.code


@app.errorhandler(sqlite3.Error)
def storage_fault(exc: sqlite3.Error):
    app.logger.exception("storage fault on %s %s", request.method, request.path)
    return jsonify(error="Internal Server Error"), 500


###############################################################################
# Service object
###############################################################################
@dataclass
class Folio:
    """The store handle plus the admin secret, built once per process."""

    store: ContentStore
    admin_secret: str

    def is_admin(self, key) -> bool:
        """
        The one place that decides who may publish or remove works.
        Plain equality against the configured secret, nothing more.
        """
        return isinstance(key, str) and key == self.admin_secret


_folio_lock = threading.Lock()


def get_folio() -> Folio:
    folio = app.extensions.get("folio")
    if folio is not None:
        return folio
    with _folio_lock:
        folio = app.extensions.get("folio")
        if folio is None:
            store = ContentStore(app.config["DATABASE"])
            store.init_schema()
            folio = Folio(store=store, admin_secret=app.config["ADMIN_SECRET"])
            app.extensions["folio"] = folio
    return folio


def reset_folio() -> None:
    """Close the shared store; the next call to get_folio() reopens it."""
    with _folio_lock:
        folio = app.extensions.pop("folio", None)
    if folio is not None:
        folio.store.close()


atexit.register(reset_folio)


###############################################################################
# Request parsing
###############################################################################
def json_body() -> dict:
    """The request's JSON object, or ``{}`` for anything else."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def storable_text(value: str) -> bool:
    """SQLite binds text as UTF-8, so lone surrogates can't be stored."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def storable_int(value: int) -> bool:
    return SQLITE_INT_MIN <= value <= SQLITE_INT_MAX


def required_text(payload: dict, *keys: str) -> list[str]:
    values = [payload.get(k) for k in keys]
    if any(not v for v in values):
        raise ValidationError("Missing fields")
    if any(not isinstance(v, str) or not storable_text(v) for v in values):
        raise ValidationError("Invalid fields")
    return values


def parse_rating(value) -> int:
    """
    • absent / null / ""   → DEFAULT_RATING
    • int or "int" string  → stored as-is (no 1..5 check)
    • beyond SQLite INTEGER, or anything else → ValidationError
    """
    if value is None or value == "":
        return DEFAULT_RATING
    if isinstance(value, bool):
        raise ValidationError("Invalid fields")
    if isinstance(value, str) and INT_RE.fullmatch(value.strip()):
        value = int(value)
    if isinstance(value, int) and storable_int(value):
        return value
    raise ValidationError("Invalid fields")


def parse_row_id(raw: str) -> int | None:
    """Plain ASCII digits within SQLite's INTEGER range, else no such row."""
    if not INT_RE.fullmatch(raw):
        return None
    row_id = int(raw)
    return row_id if storable_int(row_id) else None


@dataclass
class NewWork:
    title: str
    body: str
    kind: str
    attachment: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> "NewWork":
        title, body, kind = required_text(payload, "title", "body", "type")
        attachment = payload.get("pdfData") or None
        if attachment is not None and not (
            isinstance(attachment, str) and storable_text(attachment)
        ):
            raise ValidationError("Invalid fields")
        return cls(title=title, body=body, kind=kind, attachment=attachment)


@dataclass
class NewReview:
    name: str
    comment: str
    rating: int = DEFAULT_RATING

    @classmethod
    def from_json(cls, payload: dict) -> "NewReview":
        name, comment = required_text(payload, "name", "comment")
        return cls(name=name, comment=comment, rating=parse_rating(payload.get("rating")))


###############################################################################
# Works
###############################################################################
@app.route("/api/content", methods=["GET"])
def list_content():
    return jsonify(get_folio().store.list_works())


@app.route("/api/content", methods=["POST"])
def create_content():
    folio = get_folio()
    payload = json_body()
    if not folio.is_admin(payload.get("adminKey")):
        app.logger.warning("rejected admin key from %s", request.remote_addr)
        raise Unauthorized()

    work = NewWork.from_json(payload)
    work_id = folio.store.create_work(
        work.title, work.body, work.kind, work.attachment
    )
    app.logger.info("work %s published (%s)", work_id, work.kind)
    return jsonify(id=work_id)


@app.route("/api/content/<work_id>", methods=["DELETE"])
def delete_content(work_id):
    folio = get_folio()
    if not folio.is_admin(request.headers.get("x-admin-key")):
        app.logger.warning("rejected admin key from %s", request.remote_addr)
        raise Unauthorized()

    row_id = parse_row_id(work_id)
    if row_id is None or not folio.store.delete_work(row_id):
        raise NotFound("Content not found")
    app.logger.info("work %s deleted", row_id)
    return jsonify(success=True)


###############################################################################
# Reviews
###############################################################################
@app.route("/api/reviews", methods=["GET"])
def list_reviews():
    return jsonify(get_folio().store.list_reviews())


@app.route("/api/reviews", methods=["POST"])
def create_review():
    review = NewReview.from_json(json_body())
    review_id = get_folio().store.create_review(
        review.name, review.comment, review.rating
    )
    app.logger.info("review %s posted (%s stars)", review_id, review.rating)
    return jsonify(id=review_id)


# No admin key here: any visitor may remove any review.
@app.route("/api/reviews/<review_id>", methods=["DELETE"])
def delete_review(review_id):
    row_id = parse_row_id(review_id)
    if row_id is None or not get_folio().store.delete_review(row_id):
        raise NotFound("Review not found")
    app.logger.info("review %s deleted", row_id)
    return jsonify(success=True)


###############################################################################
# Single-page bundle
###############################################################################
@app.route("/", defaults={"path": ""})
@app.route("/<path:path>")
def spa(path: str):
    """
    Serve a built asset if it exists, otherwise index.html so the
    client-side router can take over. /api/* never falls through.
    """
    if path == "api" or path.startswith("api/"):
        abort(404)

    dist = app.config["DIST_DIR"]
    asset = safe_join(dist, path) if path else None
    if asset and Path(asset).is_file():
        return send_from_directory(dist, path)
    if Path(dist, "index.html").is_file():
        return send_from_directory(dist, "index.html")
    abort(404)


@app.after_request
def sec_headers(resp):
    resp.headers.update(
        {
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
    )
    return resp


###############################################################################
# CLI
###############################################################################
@app.cli.command("init")
def cli_init():
    """Create the database tables (no-op if they exist)."""
    folio = get_folio()
    click.secho("\n✅  Database ready.", fg="green")
    click.echo(f"\n{folio.store.path}\n")


@app.cli.command("stats")
def cli_stats():
    """Print how many works and reviews are stored."""
    store = get_folio().store
    click.echo(f"works:   {store.count_works()}")
    click.echo(f"reviews: {store.count_reviews()}")


###############################################################################
# main
###############################################################################
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=PORT)
