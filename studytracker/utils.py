import math
import sys
import uuid
from pathlib import Path


def get_resource_path(relative_path: str) -> Path:
    """
    Get absolute path to resource, works for dev and for PyInstaller.

    Args:
        relative_path: Relative path from the package root (e.g., "resources/templates")

    Returns:
        Absolute Path object
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller creates a temp folder and stores path in _MEIPASS
        base_path = Path(sys._MEIPASS) / "studytracker"
    else:
        # This file is in studytracker/utils.py
        base_path = Path(__file__).parent.absolute()

    return base_path / relative_path


def new_id(kind: str) -> str:
    """Generate a unique identifier such as 'subject_3f2a...'"""
    return f"{kind}_{uuid.uuid4().hex}"


def round_half_up(value: float) -> int:
    """Round x.5 upwards (Python's round() uses banker's rounding)"""
    return int(math.floor(value + 0.5))


HOURS_PRECISION = 9


def round_hours(hours: float) -> float:
    """Round summed hours to a fixed precision"""
    return round(hours, HOURS_PRECISION)


def percentage(part: float, total: float) -> int:
    """Whole-number percentage of part in total, 0 when total is 0"""
    if not total:
        return 0
    return round_half_up(part / total * 100)


def parse_float(text) -> float:
    """Parse user input as a float; anything unparseable becomes 0"""
    if text is None:
        return 0.0
    try:
        value = float(str(text).strip().replace(",", "."))
    except ValueError:
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def parse_int(text) -> int:
    """Parse user input as an integer; anything unparseable becomes 0"""
    if text is None:
        return 0
    try:
        return int(str(text).strip())
    except ValueError:
        return int(parse_float(text))
