"""Identity generation and input validation.

Pure helpers: nothing here touches storage, and expected validation
failures are reported through ``SanitizeResult`` rather than raised.
"""

import random
import re
import string
import uuid
from typing import NamedTuple, Optional

CODE_LENGTH = 6
CODE_ALPHABET = string.ascii_uppercase + string.digits
NICKNAME_MIN_LENGTH = 3
NICKNAME_MAX_LENGTH = 20
RESPONSE_MAX_LENGTH = 500

_NICKNAME_PATTERN = re.compile(r'[A-Za-z0-9 ]+')
_CODE_PATTERN = re.compile(r'[A-Z0-9]{6}')
_UUID_PATTERN = re.compile(
    r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', re.IGNORECASE
)
_TAG_PATTERN = re.compile(r'<[^>]*>')


class SanitizeResult(NamedTuple):
    sanitized: str
    is_valid: bool
    error: Optional[str] = None


def generate_session_code(length=CODE_LENGTH) -> str:
    """Generate a short session code; callers retry on collision."""
    return ''.join(random.choices(CODE_ALPHABET, k=length))


def generate_opaque_id() -> str:
    return str(uuid.uuid4())


def validate_nickname(raw) -> bool:
    """Letters, digits and spaces only, 3-20 characters once trimmed.

    Both the length and the character check apply to the trimmed value, so
    surrounding whitespace of any kind is ignored.
    """
    if not isinstance(raw, str):
        return False
    trimmed = raw.strip()
    if not NICKNAME_MIN_LENGTH <= len(trimmed) <= NICKNAME_MAX_LENGTH:
        return False
    return _NICKNAME_PATTERN.fullmatch(trimmed) is not None


def sanitize_text(raw, max_length: Optional[int] = None) -> str:
    if not isinstance(raw, str):
        return ''
    sanitized = _TAG_PATTERN.sub('', raw)
    sanitized = sanitized.replace('\0', '')
    sanitized = sanitized.strip()
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip()
    return sanitized


def sanitize_nickname(raw) -> SanitizeResult:
    sanitized = sanitize_text(raw, NICKNAME_MAX_LENGTH)
    if not sanitized:
        return SanitizeResult('', False, 'Nickname cannot be empty')
    if len(sanitized) < NICKNAME_MIN_LENGTH:
        return SanitizeResult(sanitized, False, 'Nickname must be at least 3 characters')
    if not validate_nickname(sanitized):
        return SanitizeResult(
            sanitized, False, 'Nickname can only contain letters, numbers, and spaces'
        )
    return SanitizeResult(sanitized, True)


def sanitize_response_text(raw) -> SanitizeResult:
    sanitized = sanitize_text(raw, RESPONSE_MAX_LENGTH)
    if not sanitized:
        return SanitizeResult('', False, 'Response cannot be empty')
    return SanitizeResult(sanitized, True)


def validate_session_code(code) -> bool:
    return isinstance(code, str) and _CODE_PATTERN.fullmatch(code) is not None


def validate_opaque_id(value) -> bool:
    return isinstance(value, str) and _UUID_PATTERN.fullmatch(value) is not None
