# backend/junkshop/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/junkshop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///junkshop.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tenant recovery: profiles with no resolvable business land here
    DEFAULT_BUSINESS_ID = os.environ.get(
        "JUNKSHOP_DEFAULT_BUSINESS_ID",
        "00000000-0000-0000-0000-000000000001",
    )
    DEFAULT_BUSINESS_NAME = os.environ.get("JUNKSHOP_DEFAULT_BUSINESS_NAME", "Default Junkshop")
    BOOTSTRAP_OWNER_EMAIL = os.environ.get("JUNKSHOP_BOOTSTRAP_OWNER_EMAIL", "owner@scrappy.com")

    INVITATION_TTL_DAYS = int(os.environ.get("JUNKSHOP_INVITATION_TTL_DAYS", "7"))

    # Image uploads
    UPLOAD_FOLDER = os.environ.get("JUNKSHOP_UPLOAD_FOLDER", "uploads")
    PUBLIC_UPLOAD_URL = os.environ.get("JUNKSHOP_PUBLIC_UPLOAD_URL", "/uploads")
    MAX_IMAGE_BYTES = 5 * 1024 * 1024
    ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")
