"""Extract a JSON value from free-form model output.

Models are asked for bare JSON but often wrap it in prose or markdown fences.
Rules, applied in order until one parses to an object or array:

1. the whole text;
2. the contents of each ``` fenced block;
3. the longest balanced `{...}` or `[...]` span that parses, skipping
   brackets inside string literals. Stray brackets in prose such as
   "see [1]" lose to the payload.
"""
import json
import re
from typing import List, Optional, Union

from app.core.exceptions import MalformedModelOutput

_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*\s*(.*?)```", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}


def _try_parse(text: str) -> Optional[Union[dict, list]]:
    try:
        value = json.loads(text)
    except (ValueError, TypeError):
        return None
    return value if isinstance(value, (dict, list)) else None


def _balanced_span(text: str, start: int) -> Optional[str]:
    """Return text[start:end] where end closes the bracket opened at `start`."""
    stack = [_CLOSERS[text[start]]]
    in_string = False
    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("}", "]"):
            if ch != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return text[start:i + 1]
    return None


def _candidates(raw: str) -> List[str]:
    found = [raw.strip()]
    found.extend(block.strip() for block in _FENCE_RE.findall(raw))
    return found


def _outermost_value(text: str) -> Optional[Union[dict, list]]:
    """Return the longest balanced span in `text` that parses."""
    best, best_len = None, 0
    pos = 0
    while pos < len(text):
        if text[pos] not in _CLOSERS:
            pos += 1
            continue
        span = _balanced_span(text, pos)
        value = _try_parse(span) if span is not None else None
        if value is None:
            pos += 1
            continue
        if len(span) > best_len:
            best, best_len = value, len(span)
        # anything nested inside a parsed span is smaller
        pos += len(span)
    return best


def extract_json(raw: str) -> Union[dict, list]:
    """Return the outermost well-formed JSON object or array found in `raw`."""
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedModelOutput("Empty response from model")

    for candidate in _candidates(raw):
        value = _try_parse(candidate)
        if value is not None:
            return value

    for candidate in _candidates(raw):
        value = _outermost_value(candidate)
        if value is not None:
            return value

    raise MalformedModelOutput("No JSON object found in model response")
