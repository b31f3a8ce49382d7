# Overview: Flask API route that turns stored image paths into loadable URLs.

from flask import Blueprint, request

from ..services.image_service import ImageStorageError, resolve_image_url


images_bp = Blueprint("images", __name__, url_prefix="/api/images")


@images_bp.get("/url")
def image_url_route():
    """
    Query params: path (object key or absolute URL)

    Returns {"path", "url"}; presigned URLs are memoized server-side.
    """
    path = request.args.get("path", "")
    try:
        url = resolve_image_url(path)
    except ValueError as e:
        return {"error": str(e)}, 400
    except ImageStorageError as e:
        return {"error": str(e)}, 502

    return {"path": path.strip(), "url": url}, 200
