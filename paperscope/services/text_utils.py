import json
import re
from typing import Any, Iterable, List, Optional

# Catalog paper ids look like P001 or P1A2B3C4D5E6F
PAPER_ID_PATTERN = re.compile(r"\bP[0-9A-Z]{3,20}\b")

# Complete string or flat object elements inside a (possibly truncated) array
ARRAY_ELEMENT_PATTERN = re.compile(r'"(?:[^"\\]|\\.)*"|\{[^{}]*\}')

# ```json ... ``` with an optional language tag; the closing fence may be missing
FENCED_BLOCK_PATTERN = re.compile(r"```[\w-]*[ \t]*\n?(.*?)(?:```|\Z)", re.DOTALL)


def strip_code_fences(response_text: str) -> str:
    """
    Body of the first markdown code block in a model reply.

    A block that never closes runs to the end of the text, which is what a
    reply cut off at the token limit looks like. Unfenced replies are
    returned as they are.
    """
    match = FENCED_BLOCK_PATTERN.search(response_text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return response_text.strip()


def widest_array(text: str) -> Optional[str]:
    """Substring from the first '[' to the last ']', if any"""
    start = text.find("[")
    end = text.rfind("]")
    if start < 0 or end <= start:
        return None
    return text[start:end + 1]


def recover_array_elements(text: str) -> List[Any]:
    """
    Recover complete elements from a JSON array that may be truncated.

    Args:
        text: Text containing the start of a JSON array

    Returns:
        Every string or flat object element that parses on its own
    """
    start = text.find("[")
    if start < 0:
        return []

    items = []
    for match in ARRAY_ELEMENT_PATTERN.finditer(text[start + 1:]):
        try:
            items.append(json.loads(match.group(0)))
        except json.JSONDecodeError:
            continue
    return items


def item_to_id(item: Any) -> Optional[str]:
    """A recommendation item is either an id string or an object with paper_id/id"""
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, dict):
        value = item.get("paper_id") or item.get("id")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_id_array(response_text: str) -> List[str]:
    """
    Parse paper ids out of a model response.

    Tries, in order: strict JSON, the widest bracketed array, partial
    recovery of a truncated array, and finally bare id-shaped tokens.

    Returns:
        Ids in the order the model gave them (may contain duplicates)
    """
    text = strip_code_fences(response_text)

    candidates = [text, widest_array(text)]
    for candidate in candidates:
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            parsed = parsed.get("recommendations") or parsed.get("paper_ids") or []
        if isinstance(parsed, list):
            return [pid for pid in (item_to_id(item) for item in parsed) if pid]

    recovered = [pid for pid in (item_to_id(item) for item in recover_array_elements(text)) if pid]
    if recovered:
        return recovered

    return PAPER_ID_PATTERN.findall(text)


def select_ids(ids: Iterable[str], allowed: Iterable[str], limit: int = 10) -> List[str]:
    """Deduplicate, drop ids outside `allowed`, keep at most `limit`"""
    allowed_set = set(allowed)
    selected = []
    for pid in ids:
        if pid in allowed_set and pid not in selected:
            selected.append(pid)
            if len(selected) >= limit:
                break
    return selected
