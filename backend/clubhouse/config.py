# backend/clubhouse/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/clubhouse.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///clubhouse.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # All "today" comparisons are made in the club's operating timezone
    CLUB_TIMEZONE = os.environ.get("CLUB_TIMEZONE", "Asia/Karachi")

    # Booking rules
    ROOM_MAX_OCCUPANTS = int(os.environ.get("ROOM_MAX_OCCUPANTS", "6"))
    HOLD_MINUTES = int(os.environ.get("HOLD_MINUTES", "15"))
    PHOTOSHOOT_FIRST_SLOT_HOUR = int(os.environ.get("PHOTOSHOOT_FIRST_SLOT_HOUR", "9"))
    PHOTOSHOOT_LAST_SLOT_HOUR = int(os.environ.get("PHOTOSHOOT_LAST_SLOT_HOUR", "18"))

    # Voucher numbering
    VOUCHER_PREFIX = os.environ.get("VOUCHER_PREFIX", "PV")
    CONSUMER_NUMBER_PREFIX = os.environ.get("CONSUMER_NUMBER_PREFIX", "1001")

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "50"))
