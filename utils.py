"""
Utility functions for SplitLedger
"""
from __future__ import annotations
import os
import uuid
from datetime import date, datetime
from typing import Optional, Union


def today_str() -> str:
    """Get today's date as ISO string"""
    return date.today().isoformat()


def parse_date(s: Union[str, date]) -> date:
    """Parse YYYY-MM-DD date string"""
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    return datetime.strptime(s.strip(), "%Y-%m-%d").date()


def date_str(value: Optional[Union[str, date]]) -> str:
    """Normalise a date or date string to YYYY-MM-DD, defaulting to today"""
    if value is None or value == "":
        return today_str()
    return parse_date(value).isoformat()


def new_id() -> str:
    """Random record identifier"""
    return str(uuid.uuid4())


def app_dir() -> str:
    """
    Get application data directory: ~/Library/Application Support/SplitLedger
    SPLITLEDGER_HOME overrides the location. Creates directory if it doesn't exist.
    """
    path = os.environ.get("SPLITLEDGER_HOME")
    if not path:
        base = os.path.expanduser("~/Library/Application Support")
        path = os.path.join(base, "SplitLedger")
    os.makedirs(path, exist_ok=True)
    return path
