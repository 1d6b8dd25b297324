"""Utility modules for JSON persistence and text handling."""

from .json_utils import read_json_file, safe_loads, write_json_file
from .text_utils import TextUtils

__all__ = ["TextUtils", "read_json_file", "safe_loads", "write_json_file"]
