from __future__ import annotations

"""
Attribute-value normalisation and comparison.

Catalog rows and customer requests describe the same caps with slightly
different words ("curve", "Curved", "Slight Curved"). This module is the
single place that decides whether two free-text attribute values refer to
the same thing.

Public helpers:

* normalize_value(text) -> str
    Lower-case + trim. ``None`` becomes "".

* synonym_group(value) -> frozenset | None
    The interchangeable spellings a normalised value belongs to.

* values_match(requested, candidate_value) -> bool
    Synonym-aware containment match used for bill shape.

* values_equal(requested, candidate_value) -> bool
    Strict case-insensitive equality used for profile.

* contains_value(requested, candidate_value) -> bool
    Plain case-insensitive containment used for structure type.
"""

from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from . import config


def build_synonym_groups(table: Mapping[str, Iterable[str]]) -> Dict[str, FrozenSet[str]]:
    """Index every spelling (canonical and alternates) to its full group."""
    index: Dict[str, FrozenSet[str]] = {}
    for canonical, alternates in table.items():
        members = {normalize_value(canonical)}
        members.update(normalize_value(a) for a in alternates)
        members.discard("")
        group = frozenset(members)
        for member in group:
            index[member] = group
    return index


def normalize_value(text: Optional[str]) -> str:
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    return text.strip().lower()


_SYNONYM_GROUPS: Dict[str, FrozenSet[str]] = build_synonym_groups(config.ATTRIBUTE_SYNONYMS)


def synonym_group(
    value: Optional[str],
    groups: Optional[Mapping[str, FrozenSet[str]]] = None,
) -> Optional[FrozenSet[str]]:
    groups = _SYNONYM_GROUPS if groups is None else groups
    return groups.get(normalize_value(value))


def values_match(
    requested: Optional[str],
    candidate_value: Optional[str],
    groups: Optional[Mapping[str, FrozenSet[str]]] = None,
) -> bool:
    """
    Decide whether a requested attribute value matches a candidate's value.

    Rules (after lower-casing and trimming both sides):
      - requested value in a synonym group: the candidate must equal a
        member of the group or contain one as a substring, so "curve"
        matches "slight curved variant";
      - otherwise the candidate must contain the requested value.

    An empty requested value never matches.
    """
    req = normalize_value(requested)
    if not req:
        return False
    cand = normalize_value(candidate_value)
    if not cand:
        return False

    group = synonym_group(req, groups)
    if group is not None:
        return cand in group or any(member in cand for member in group)

    return req in cand


def values_equal(requested: Optional[str], candidate_value: Optional[str]) -> bool:
    req = normalize_value(requested)
    return bool(req) and req == normalize_value(candidate_value)


def contains_value(requested: Optional[str], candidate_value: Optional[str]) -> bool:
    req = normalize_value(requested)
    return bool(req) and req in normalize_value(candidate_value)


def parse_name_list(raw) -> List[str]:
    """
    Alternate display names arrive as a list, a comma-separated string or
    nothing at all. Returns stripped, non-empty names in their given order.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts: Iterable = raw.split(",")
    else:
        try:
            parts = list(raw)
        except TypeError:
            parts = [raw]
    out: List[str] = []
    for part in parts:
        if part is None:
            continue
        name = str(part).strip()
        if name and name.lower() != "nan":
            out.append(name)
    return out
