"""
Best-effort recovery of structured data from free-text AI replies.
Models are asked for "JSON only" but routinely wrap it in prose or markdown
fences, so we scan for the first balanced {...} block instead of trusting the raw text.
"""

import json
import logging
from typing import Any, Dict, Optional


def find_json_object(text: Optional[str]) -> Optional[str]:
    """
    Return the first balanced {...} substring of `text`, or None.
    Braces inside JSON string literals are ignored.
    """
    if not text:
        return None

    start = text.find('{')
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == '\\':
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == '{':
                depth += 1
            elif ch == '}':
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next opening brace.
        start = text.find('{', start + 1)
    return None


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse the first balanced JSON object found in `text`.
    Never raises: returns None when there is no object or it does not parse,
    so each caller decides between falling back and failing.
    """
    candidate = find_json_object(text)
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logging.warning(f"Found a {{...}} block in AI reply but it is not valid JSON: {e}")
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed
