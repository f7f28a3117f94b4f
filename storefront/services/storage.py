# storefront/services/storage.py
from __future__ import annotations

import uuid
from pathlib import Path

from flask import current_app
from werkzeug.utils import secure_filename

from storefront.errors import ValidationError

ALLOWED_IMAGE_EXTS = {"png", "jpg", "jpeg", "gif", "webp"}
PUBLIC_PREFIX = "/uploads/products/"


def _upload_dir() -> Path:
    p = Path(current_app.config["PRODUCT_UPLOAD_DIR"])
    p.mkdir(parents=True, exist_ok=True)
    return p


def store_images(files) -> list[str]:
    """
    Save uploaded FileStorage objects; returns their public paths.
    On failure the files written so far are removed before re-raising.
    """
    stored: list[str] = []
    try:
        for f in files:
            if not f or not f.filename:
                continue
            name = secure_filename(f.filename)
            ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
            if ext not in ALLOWED_IMAGE_EXTS:
                raise ValidationError(f"Unsupported image type: {f.filename}")
            final = f"{uuid.uuid4().hex[:12]}_{name}"
            f.save(_upload_dir() / final)
            stored.append(PUBLIC_PREFIX + final)
    except Exception:
        remove_stored(stored)
        raise
    return stored


def remove_stored(paths) -> None:
    """Best-effort delete of previously stored images; failures are logged."""
    base = _upload_dir()
    for p in paths or []:
        if not isinstance(p, str) or not p.startswith(PUBLIC_PREFIX):
            continue  # external URL, not ours
        target = base / Path(p[len(PUBLIC_PREFIX):]).name
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            current_app.logger.warning("could not remove stored image %s: %s", target, e)
