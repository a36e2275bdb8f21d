from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from flask import request
from werkzeug.exceptions import BadRequest

from astrochart.core.astrocartography import AstroLinePoint, AstrocartographyResult
from astrochart.core.constants import ANTIMERIDIAN_JUMP_DEG

# ---- request / response helpers --------------------------------------------

def body_json() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

# ---- map helpers ------------------------------------------------------------
# Renderers draw polylines segment by segment; a segment that jumps across the
# antimeridian would be drawn straight across the whole map.

def split_antimeridian(points: Iterable[AstroLinePoint],
                       threshold: float = ANTIMERIDIAN_JUMP_DEG) -> List[List[AstroLinePoint]]:
    """Split where consecutive longitudes differ by more than ``threshold`` degrees."""
    segments: List[List[AstroLinePoint]] = []
    current: List[AstroLinePoint] = []
    prev: Optional[AstroLinePoint] = None
    for p in points:
        if prev is not None and abs(p.longitude - prev.longitude) > threshold:
            if current:
                segments.append(current)
            current = []
        current.append(p)
        prev = p
    if current:
        segments.append(current)
    return segments


def astrocartography_payload(result: AstrocartographyResult) -> Dict[str, Any]:
    """Result dict plus pre-split ASC/DESC segments for map renderers."""
    out = result.as_dict()
    for line_dict, ls in zip(out["lines"], result.lines):
        line_dict["segments"] = {
            "asc": [[p.as_dict() for p in seg] for seg in split_antimeridian(ls.asc)],
            "desc": [[p.as_dict() for p in seg] for seg in split_antimeridian(ls.desc)],
        }
    return out
