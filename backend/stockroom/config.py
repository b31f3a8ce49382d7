# backend/stockroom/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Comma-separated list of frontend origins allowed to call the API
    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if o.strip()
    ]

    # Catalog
    PRODUCT_CODE_PREFIX = os.environ.get("PRODUCT_CODE_PREFIX", "BS")
    PRODUCT_PAGE_SIZE = int(os.environ.get("PRODUCT_PAGE_SIZE", "700"))
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "50"))

    # Object storage (MinIO / S3-compatible) for product images
    MINIO_ENDPOINT = os.environ.get("MINIO_ENDPOINT", "localhost:9000")
    MINIO_ACCESS_KEY = os.environ.get("MINIO_ACCESS_KEY", "minioadmin")
    MINIO_SECRET_KEY = os.environ.get("MINIO_SECRET_KEY", "minioadmin")
    MINIO_USE_SSL = _env_bool("MINIO_USE_SSL", False)
    MINIO_BUCKET = os.environ.get("MINIO_BUCKET", "product-images")
    IMAGE_URL_TTL_SECONDS = int(os.environ.get("IMAGE_URL_TTL_SECONDS", "600"))

    # Printable estimate sheet
    ESTIMATE_MIN_ROWS = int(os.environ.get("ESTIMATE_MIN_ROWS", "15"))
    ESTIMATE_SUPPLIER_NAME = os.environ.get("ESTIMATE_SUPPLIER_NAME", "")
    ESTIMATE_SUPPLIER_REG_NO = os.environ.get("ESTIMATE_SUPPLIER_REG_NO", "")
    ESTIMATE_SUPPLIER_REPRESENTATIVE = os.environ.get("ESTIMATE_SUPPLIER_REPRESENTATIVE", "")
    ESTIMATE_SUPPLIER_ADDRESS = os.environ.get("ESTIMATE_SUPPLIER_ADDRESS", "")
    ESTIMATE_INTRO_LINE = os.environ.get("ESTIMATE_INTRO_LINE", "")
    ESTIMATE_CONTACT_LINE = os.environ.get("ESTIMATE_CONTACT_LINE", "")
