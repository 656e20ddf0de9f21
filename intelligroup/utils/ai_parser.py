"""
Tolerant parsing of model responses.

Models wrap JSON in code fences or surround it with prose despite being
asked not to. ``extract_json`` recovers the first complete JSON value.
"""

from __future__ import annotations

import json
import re
from typing import Any, List


_FENCE_OPEN = re.compile(r"^```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


def extract_json(text: str) -> Any:
    """
    Extract the first JSON object or array from ``text``.

    Raises:
        ValueError: nothing parseable was found
    """
    if text is None:
        raise ValueError("Empty response")

    t = text.strip()
    if not t:
        raise ValueError("Empty response")

    if t.startswith("```"):
        t = _FENCE_OPEN.sub("", t)
        t = _FENCE_CLOSE.sub("", t).strip()

    # Fast path: full JSON
    try:
        return json.loads(t)
    except ValueError:
        pass

    # Scan for balanced braces/brackets
    for start in (i for i, ch in enumerate(t) if ch in "[{"):
        stack: List[str] = []
        in_str = False
        escape = False

        for i in range(start, len(t)):
            ch = t[i]

            if in_str:
                if escape:
                    escape = False
                elif ch == "\\":
                    escape = True
                elif ch == '"':
                    in_str = False
                continue

            if ch == '"':
                in_str = True
            elif ch in "[{":
                stack.append(ch)
            elif ch in "]}":
                if not stack:
                    break
                opener = stack.pop()
                if (opener == "[") != (ch == "]"):
                    break
                if not stack:
                    try:
                        return json.loads(t[start:i + 1])
                    except ValueError:
                        break

    raise ValueError("Could not parse JSON from model response")


def parse_extraction_response(text: str) -> dict[str, Any]:
    """
    Parse a ballot extraction response into the ``{isStartPage, data}`` shape.

    A bare field object (no ``data`` wrapper) is accepted and wrapped.
    A one-element list is unwrapped.

    Raises:
        ValueError: the response holds no JSON object
    """
    data = extract_json(text)

    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    if "data" in data or "isStartPage" in data or "is_start_page" in data:
        return data
    return {"isStartPage": False, "data": data}
