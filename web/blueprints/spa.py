"""Static file hosting with extensionless URLs and SPA fallback.

Resolution order for a request path (first match wins):

  1. ``/``               -> index.html, else default.html
  2. ``/<p>``            -> <p>.html when it is a file (except ``/index``)
  3. ``/<p>`` missing    -> default.html
  4. ``/<p>`` directory  -> <p>/index.html, else default.html
  5. ``/<p>`` file       -> served as-is

Paths with ``..`` segments or NUL bytes are rejected with 400; other
filesystem errors become 500.
"""
import os
import posixpath
import stat

from flask import Blueprint, abort, current_app, request, send_file
from loguru import logger

from config import DEFAULT_PAGE, INDEX_PAGE

spa_bp = Blueprint("spa", __name__)


class InvalidPathError(ValueError):
    """The request path cannot be mapped onto the static root."""


def canonicalize(url_path):
    """Return *url_path* as a clean path relative to the static root.

    The site root comes back as ``"."``.
    """
    if "\x00" in url_path:
        raise InvalidPathError("invalid URL path")
    if ".." in url_path.replace("\\", "/").split("/"):
        raise InvalidPathError("invalid URL path")
    cleaned = posixpath.normpath("/" + url_path.lstrip("/"))
    return cleaned.lstrip("/") or "."


def resolve_spa_path(url_path, root):
    """Map *url_path* to the absolute path of the file to serve.

    Raises InvalidPathError for paths that cannot be canonicalized and
    OSError for filesystem failures other than "does not exist".
    """
    path = canonicalize(url_path)
    root = os.path.abspath(root)
    default_page = os.path.join(root, DEFAULT_PAGE)

    if path == ".":
        index = os.path.join(root, INDEX_PAGE)
        if os.path.exists(index):
            logger.debug("spa {} -> root index", path)
            return index
        logger.debug("spa {} -> root default", path)
        return default_page

    target = os.path.join(root, path)

    if path != "index" and os.path.isfile(target + ".html"):
        logger.debug("spa {} -> {}.html", path, path)
        return target + ".html"

    try:
        st = os.stat(target)
    except FileNotFoundError:
        logger.debug("spa {} -> default (missing)", path)
        return default_page

    if stat.S_ISDIR(st.st_mode):
        index = os.path.join(target, INDEX_PAGE)
        if not os.path.exists(index):
            logger.debug("spa {} -> default (dir without index)", path)
            return default_page
        logger.debug("spa {} -> dir index", path)
        return index

    logger.debug("spa {} -> static file", path)
    return target


def static_root():
    root = current_app.config.get("STATIC_ROOT")
    return str(root) if root else os.getcwd()


@spa_bp.route("/", defaults={"path": ""})
@spa_bp.route("/<path:path>")
def spa_handler(path):
    try:
        filename = resolve_spa_path(request.path, static_root())
    except InvalidPathError as e:
        abort(400, description=str(e))
    except OSError as e:
        logger.warning("cannot resolve {}: {}", request.path, e)
        abort(500, description=str(e))

    try:
        return send_file(filename)
    except FileNotFoundError:
        # default.html itself is missing
        abort(404)
