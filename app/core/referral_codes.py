from __future__ import annotations

import re
import secrets

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_PREFIX = "FAR"
REFERRAL_CODE_SUFFIX_LENGTH = 8


def generate_referral_code(length: int = REFERRAL_CODE_SUFFIX_LENGTH) -> str:
    """Generates a prefixed uppercase referral code with low typo ambiguity."""
    if length <= 0:
        raise ValueError("length must be positive")
    suffix = "".join(secrets.choice(ALPHABET) for _ in range(length))
    return f"{REFERRAL_CODE_PREFIX}{suffix}"


def normalize_referral_code(raw_code: str) -> str:
    return raw_code.strip().upper()


START_PAYLOAD_REFERRAL_RE = re.compile(r"^ref_([A-Za-z0-9]{3,16})$")


def extract_referral_code_from_start_payload(start_payload: str | None) -> str | None:
    if not start_payload:
        return None
    match = START_PAYLOAD_REFERRAL_RE.match(start_payload.strip())
    if match is None:
        return None
    return normalize_referral_code(match.group(1))
