"""
Utility helpers for the clinic survey system

Simple utility functions for ID and filename generation.
"""

import uuid
from datetime import datetime


def generate_survey_id(short=True):
    """
    Generate unique survey identifier

    Args:
        short (bool): If True, return 8-char hex. If False, return full UUID.

    Returns:
        str: Survey ID

    Examples:
        >>> generate_survey_id()
        'a3f7e2b9'
    """
    full_id = uuid.uuid4().hex
    return full_id[:8] if short else full_id


def generate_response_id():
    """Full-length hex id for a submitted response."""
    return uuid.uuid4().hex


def generate_response_filename(response_id, extension="json"):
    """
    Generate timestamped filename for a response

    Format: RESPONSE_{YYYYMMDD_HHMMSS}_{response_id}.{extension}

    Examples:
        >>> generate_response_filename("a3f7e2b9")
        'RESPONSE_20251126_153045_a3f7e2b9.json'
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"RESPONSE_{timestamp}_{response_id}.{extension}"
