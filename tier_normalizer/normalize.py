"""
Core tier normalization logic.

Responsibilities:
- tier chain discovery (first "...List" key per level, guided by "Label")
- renaming of tier keys to Tier1_List, Tier2_List, ..., BranchesList
- decoding of uploaded JSON bytes + response envelope for the API
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Sequence, Set, Tuple

from charset_normalizer import from_bytes

from .models import TierAnalysis, TierChain
from .rules import LABEL_KEY, LIST_SUFFIX, MAX_NESTING_DEPTH

logger = logging.getLogger(__name__)


class CyclicStructureError(ValueError):
    """The input contains a container that is (directly or indirectly) its own child."""


class PayloadDecodeError(ValueError):
    """Uploaded bytes could not be decoded into a JSON value."""


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _is_sequence(value: Any) -> bool:
    # str/bytes are scalars here
    return isinstance(value, (list, tuple))


def tier_name_from_key(key: Any) -> Optional[str]:
    """Return the original tier name for a ``<Name>List`` key, else None."""
    if isinstance(key, str) and key.endswith(LIST_SUFFIX):
        return key[: -len(LIST_SUFFIX)]
    return None


def discover_tier_chain(data: Any) -> TierChain:
    """
    Walk from the root and collect the original tier names.

    Rules:
    - At each mapping, only the first key ending in "List" is followed.
    - The first element of that list (or the value itself if it is not a
      list) must be a mapping with a "Label" key to descend further.
    - The last name recorded is the deepest tier; it is never dropped.
    """
    names = []
    visited: Set[int] = set()
    current = data

    while isinstance(current, Mapping):
        if id(current) in visited:
            raise CyclicStructureError(
                f"tier chain revisits a mapping after {len(names)} levels: {names}"
            )
        visited.add(id(current))

        list_key = next((key for key in current if tier_name_from_key(key) is not None), None)
        if list_key is None:
            break

        names.append(tier_name_from_key(list_key))

        list_value = current[list_key]
        if _is_sequence(list_value):
            first_item = list_value[0] if list_value else None
        else:
            first_item = list_value

        if not isinstance(first_item, Mapping) or LABEL_KEY not in first_item:
            break

        current = first_item

    return TierChain(original_names=names)


def rename_tier_keys(data: Any, original_tier_names: Sequence[str]) -> Any:
    """
    Return a copy of *data* with every tier key renamed.

    A key is renamed when it ends in "List" and its stripped name appears in
    *original_tier_names*, wherever it sits in the tree. All other keys and
    all scalars pass through untouched. Containers are always rebuilt.
    """
    key_map = TierChain(original_names=list(original_tier_names)).key_map
    return _rename(data, key_map, set())


def _rename(value: Any, key_map: Dict[str, str], ancestors: Set[int]) -> Any:
    if isinstance(value, Mapping):
        marker = id(value)
        if marker in ancestors:
            raise CyclicStructureError("mapping contains itself")
        ancestors.add(marker)

        result: Dict[Any, Any] = {}
        for key, item in value.items():
            name = tier_name_from_key(key)
            new_key = key_map.get(name, key) if name is not None else key
            result[new_key] = _rename(item, key_map, ancestors)

        ancestors.discard(marker)
        return result

    if _is_sequence(value):
        marker = id(value)
        if marker in ancestors:
            raise CyclicStructureError("sequence contains itself")
        ancestors.add(marker)

        items = [_rename(item, key_map, ancestors) for item in value]

        ancestors.discard(marker)
        return tuple(items) if isinstance(value, tuple) else items

    return value


def analyze_tier_structure(data: Any) -> TierAnalysis:
    chain = discover_tier_chain(data)
    transformed = rename_tier_keys(data, chain.original_names)

    logger.debug("tier structure %r -> %s", chain.original_names, chain.structure or "<none>")

    return TierAnalysis(
        tier_count=chain.tier_count,
        tier_names=chain.canonical_names,
        original_tier_names=chain.original_names,
        structure=chain.structure,
        transformed_data=transformed,
    )


def check_nesting_depth(value: Any, max_depth: int = MAX_NESTING_DEPTH) -> None:
    """Raise PayloadDecodeError when containers nest deeper than *max_depth*."""
    stack = [(value, 1)]
    while stack:
        current, depth = stack.pop()
        if isinstance(current, Mapping):
            children = list(current.values())
        elif _is_sequence(current):
            children = list(current)
        else:
            continue
        if depth > max_depth:
            raise PayloadDecodeError(f"nesting too deep (limit {max_depth})")
        stack.extend((child, depth + 1) for child in children)


def decode_json_bytes(raw: bytes, max_depth: int = MAX_NESTING_DEPTH) -> Tuple[Any, Dict[str, Any]]:
    """
    Decode uploaded bytes into a JSON value.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - UTF-8 input with a BOM is decoded with utf-8-sig so json sees no BOM.
    - If the detected encoding fails, fall back to UTF-8.
    - Anything still undecodable, not valid JSON, or nested deeper than
      *max_depth* is a PayloadDecodeError.
    """
    detected = None

    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode("utf-8-sig")
            decode_used = "utf-8-sig"
            decode_fallback = True
        except UnicodeDecodeError as exc:
            raise PayloadDecodeError(f"cannot decode payload (detected {detected!r})") from exc

    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PayloadDecodeError(f"invalid JSON: {exc.msg} at line {exc.lineno} column {exc.colno}") from exc
    except RecursionError as exc:
        raise PayloadDecodeError("nesting too deep") from exc

    check_nesting_depth(value, max_depth)

    report = {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
    }
    return value, report


def normalize_json_bytes(raw: bytes, max_depth: int = MAX_NESTING_DEPTH) -> Dict[str, Any]:
    """
    Decode, analyze and rename.
    Returns a dict matching the API's response envelope.
    """
    value, encoding_report = decode_json_bytes(raw, max_depth)
    analysis = analyze_tier_structure(value)

    return {
        "analysis": analysis.model_dump(by_alias=True),
        "source": {
            "sha256": _sha256_hex(raw),
            "size_bytes": len(raw),
            "encoding": encoding_report,
        },
    }
