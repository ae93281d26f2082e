import logging
import secrets
import time
from flask import current_app
from werkzeug.utils import secure_filename
from storefront.services import image_service, storage_service
from storefront.services.errors import ActionError

logger = logging.getLogger(__name__)

FOLDERS = {"image": "images", "video": "videos"}


def _extension(filename, kind):
    name = secure_filename(filename or "")
    if "." in name:
        return name.rsplit(".", 1)[1].lower()
    return "jpg" if kind == "image" else "mp4"


def store_upload(file, kind):
    """Validate and store one uploaded media file.

    ``kind`` is ``image`` or ``video``; the file's declared MIME type must
    match it. Files are renamed to ``<epoch ms>-<random>.<ext>``.
    Returns ``{"url": ..., "filename": ...}``.
    """
    if file is None or not file.filename:
        raise ActionError("No file provided")
    if kind not in FOLDERS:
        raise ActionError("Invalid type. Must be 'image' or 'video'")
    if not (file.mimetype or "").startswith(f"{kind}/"):
        raise ActionError(f"File must be an {kind}" if kind == "image" else f"File must be a {kind}")

    data = file.read()
    max_size = current_app.config["MAX_UPLOAD_SIZE"]
    try:
        if kind == "image":
            image_service.validate_image(data, max_size)
        else:
            image_service.validate_video(data, max_size)
    except ValueError as e:
        raise ActionError(str(e))

    filename = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{_extension(file.filename, kind)}"
    url = storage_service.save(f"{FOLDERS[kind]}/{filename}", data, file.mimetype)
    logger.info("Uploaded %s %s", kind, filename)
    return {"url": url, "filename": filename}
