# Overview: Flask API routes for image uploads and serving stored images.

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from .. import get_services
from ..decorators import require_auth, require_capability
from ..errors import JunkshopError, ValidationError
from ..permissions import CAN_MANAGE_TRANSACTIONS
from .common import error_response, internal_error


images_bp = Blueprint("images", __name__)


@images_bp.post("/api/images")
@require_auth
@require_capability(CAN_MANAGE_TRANSACTIONS)
def upload_image_route():
    """
    Upload one image.

    Accepts either multipart form data ("file" part, optional "bucket") or
    JSON {"data_url": "data:image/png;base64,...", "bucket": ...}.
    Returns {"public_url", "path"}.
    """
    try:
        store = get_services().images

        upload = request.files.get("file")
        if upload is not None:
            bucket = request.form.get("bucket", "transaction-images")
            # Bounded read: one byte past the limit is enough to reject
            data = upload.stream.read(store.max_bytes + 1)
            result = store.put(data, upload.mimetype, bucket=bucket)
        else:
            body = request.get_json(silent=True) or {}
            data_url = body.get("data_url")
            if not data_url:
                raise ValidationError("Either a file upload or data_url is required", field="image")
            result = store.put_data_url(data_url, bucket=body.get("bucket", "transaction-images"))

        return jsonify(result), 201
    except JunkshopError as e:
        return error_response(e)
    except Exception:
        return internal_error("upload image")


@images_bp.get("/uploads/<path:path>")
def serve_image_route(path: str):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], path)
