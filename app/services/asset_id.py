# app/services/asset_id.py
from __future__ import annotations

import random
import time
from typing import Optional


def generate_asset_id(
    state: str,
    district: str,
    *,
    now_ms: Optional[int] = None,
    rand: Optional[int] = None,
) -> str:
    """
    Human-readable parcel identifier:

        upper(state[:2]) + upper(district[:3]) + last 6 digits of epoch-ms + 3-digit random

    e.g. KA + BEN + 123456 + 042 -> "KABEN123456042".
    Uniqueness is enforced by the registry, not here.
    """
    state = (state or "").strip()
    district = (district or "").strip()
    if not state or not district:
        raise ValueError("state and district are required to derive an asset id.")

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if rand is None:
        rand = random.randint(0, 999)

    state_code = state[:2].upper()
    district_code = district[:3].upper()
    timestamp = f"{now_ms % 1_000_000:06d}"
    suffix = f"{rand % 1000:03d}"
    return f"{state_code}{district_code}{timestamp}{suffix}"
