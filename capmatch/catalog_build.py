from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from .config import CATALOG_SNAPSHOT_PATH, SUPPORTED_CATALOG_SUFFIXES
from .normalize import parse_name_list
from .pipeline_types import CatalogEntry, PriceTier


# ---------------------------
# Column detection / standardization
# ---------------------------

# Exports from the product service, the admin CSV and hand-made fixtures
# all spell the columns differently.
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "id": ["id", "ID", "product_id", "Product ID"],
    "name": ["name", "Name", "Product Name", "product_name", "productName"],
    "code": ["code", "Code", "Product Code", "product_code", "sku", "SKU"],
    "panel_count": ["panel_count", "panelCount", "Panel Count", "Panels", "panels"],
    "bill_shape": ["bill_shape", "billShape", "Bill Shape", "Bill"],
    "profile": ["profile", "Profile", "Crown Profile"],
    "structure_type": [
        "structure_type",
        "structureType",
        "Structure Type",
        "structure",
        "Structure",
    ],
    "pricing_tier": ["pricing_tier", "pricingTier", "Pricing Tier"],
    "tier_name": ["tier_name", "tierName", "Tier Name", "price_tier", "priceTier", "Tier"],
    "nick_names": ["nick_names", "nickNames", "Nick Names", "nicknames", "Nicknames"],
    "is_active": ["is_active", "isActive", "Active", "active"],
}

CANONICAL_COLUMNS = [
    "id",
    "name",
    "code",
    "panel_count",
    "bill_shape",
    "profile",
    "structure_type",
    "tier_id",
    "tier_name",
    "has_tier",
    "nick_names",
]


def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename columns from a raw catalog export to the canonical schema.
    """
    col_map: Dict[str, str] = {}
    lower_to_original = {str(c).lower(): c for c in df.columns}

    for canon, candidates in COLUMN_CANDIDATES.items():
        for candidate in candidates:
            # Try exact, then case-insensitive
            if candidate in df.columns:
                col_map[candidate] = canon
                break
            cand_lower = candidate.lower()
            if cand_lower in lower_to_original:
                col_map[lower_to_original[cand_lower]] = canon
                break

    logger.info("Standardizing columns with map: {}", col_map)

    df_std = df.rename(columns=col_map)

    missing = [c for c in ("name", "panel_count") if c not in df_std.columns]
    if missing:
        logger.warning("Raw catalog is missing expected columns: {}", missing)

    return df_std


# ---------------------------
# Field parsing helpers
# ---------------------------

def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    return value is pd.NA or value is pd.NaT


def parse_panel_count(value) -> Optional[int]:
    """
    Parse a panel count into an int.

    - numeric values are truncated to int
    - strings take the first number found, e.g. "7-Panel" -> 7
    - anything else -> None
    """
    if _is_missing(value) or isinstance(value, bool):
        return None

    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return int(value)

    text = str(value).strip()
    m = re.search(r"\d+", text)
    if not m:
        if text:
            logger.warning("Unparseable panel count {!r}; treating as missing", value)
        return None
    return int(m.group(0))


def clean_text_field(value) -> Optional[str]:
    """Strip a free-text attribute; missing or blank -> None."""
    if _is_missing(value):
        return None
    text = str(value).strip()
    return text or None


def _canonicalize_active(value) -> bool:
    """
    Rows are active unless explicitly flagged otherwise.
    """
    if _is_missing(value):
        return True
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"no", "n", "false", "0", "inactive"}:
            return False
        return True
    return bool(value)


def _tier_from_row(row: pd.Series) -> tuple[bool, Optional[str], Optional[str]]:
    """
    Pull (has_tier, tier_id, tier_name) from either a nested ``pricing_tier``
    record or flat tier columns.

    Any nested record counts as a tier, even one without a name.
    """
    nested = row.get("pricing_tier")
    if isinstance(nested, dict):
        name = clean_text_field(nested.get("tier_name") or nested.get("name"))
        tier_id = clean_text_field(nested.get("id"))
        return True, tier_id, name
    if isinstance(nested, str) and nested.strip():
        # flat exports put the tier name straight into pricing_tier
        return True, clean_text_field(row.get("tier_id")), nested.strip()
    tier_id = clean_text_field(row.get("tier_id"))
    name = clean_text_field(row.get("tier_name"))
    return tier_id is not None or name is not None, tier_id, name


# ---------------------------
# Catalog normalization
# ---------------------------

def normalize_catalog_df(df_raw: pd.DataFrame) -> pd.DataFrame:
    """
    Normalization pipeline for a product export.

    Output keeps row order (which the matcher relies on for ties and
    fallback) and has the canonical schema:

    - id (str)
    - name (str)
    - code (str)
    - panel_count (int or None)
    - bill_shape / profile / structure_type (str or None)
    - tier_id / tier_name (str or None)
    - has_tier (bool; False = unpublished)
    - nick_names (List[str])
    """
    logger.info("Normalizing catalog dataframe with {} raw rows", len(df_raw))

    df = _standardize_columns(df_raw.copy())

    if df.empty:
        return pd.DataFrame(columns=CANONICAL_COLUMNS)

    if "is_active" in df.columns:
        active = df["is_active"].apply(_canonicalize_active)
        dropped = int((~active).sum())
        if dropped:
            logger.info("Dropping {} inactive products", dropped)
        df = df[active]

    df = df.reset_index(drop=True)

    out = pd.DataFrame(index=df.index)
    if "id" in df.columns:
        out["id"] = [
            clean_text_field(v) or str(i) for i, v in zip(df.index, df["id"])
        ]
    else:
        out["id"] = [str(i) for i in df.index]

    out["name"] = [clean_text_field(v) or "" for v in df.get("name", pd.Series(None, index=df.index))]
    out["code"] = [clean_text_field(v) or "" for v in df.get("code", pd.Series(None, index=df.index))]

    panel = df.get("panel_count", pd.Series(None, index=df.index, dtype=object))
    out["panel_count"] = pd.Series(
        [parse_panel_count(v) for v in panel], index=df.index, dtype=object
    )

    for col in ("bill_shape", "profile", "structure_type"):
        values = df.get(col, pd.Series(None, index=df.index, dtype=object))
        out[col] = pd.Series([clean_text_field(v) for v in values], index=df.index, dtype=object)

    tiers = [_tier_from_row(row) for _, row in df.iterrows()]
    out["tier_id"] = pd.Series([t[1] for t in tiers], index=df.index, dtype=object)
    out["tier_name"] = pd.Series([t[2] for t in tiers], index=df.index, dtype=object)
    out["has_tier"] = pd.Series([t[0] for t in tiers], index=df.index, dtype=bool)

    nick = df.get("nick_names", pd.Series(None, index=df.index, dtype=object))
    out["nick_names"] = pd.Series(
        [parse_name_list(None if _is_missing(v) else v) for v in nick],
        index=df.index,
        dtype=object,
    )

    unpublished = int((~out["has_tier"]).sum())
    if unpublished:
        logger.warning("{} products have no pricing tier and will never be matched", unpublished)
    unnamed = int((out["has_tier"] & out["tier_name"].isna()).sum())
    if unnamed:
        logger.warning("{} products have a pricing tier without a tier name", unnamed)

    logger.info("Catalog normalization complete. Final rows: {}", len(out))
    return out[CANONICAL_COLUMNS]


def entries_from_frame(df: pd.DataFrame) -> List[CatalogEntry]:
    """
    Build CatalogEntry objects from a normalized frame, in row order.
    """
    entries: List[CatalogEntry] = []
    for row in df.to_dict(orient="records"):
        tier_name = clean_text_field(row.get("tier_name"))
        tier = None
        if bool(row.get("has_tier", tier_name is not None)):
            tier = PriceTier(tier_name=tier_name, id=clean_text_field(row.get("tier_id")))
        nick = row.get("nick_names")
        entries.append(
            CatalogEntry(
                id=str(row["id"]),
                name=str(row.get("name") or ""),
                code=str(row.get("code") or ""),
                panel_count=parse_panel_count(row.get("panel_count")),
                bill_shape=clean_text_field(row.get("bill_shape")),
                profile=clean_text_field(row.get("profile")),
                structure_type=clean_text_field(row.get("structure_type")),
                pricing_tier=tier,
                nick_names=tuple(parse_name_list(nick if isinstance(nick, (list, tuple)) else None)),
            )
        )
    return entries


# ---------------------------
# IO helpers
# ---------------------------

def load_catalog_frame(path: Path) -> pd.DataFrame:
    """
    Load a raw product export. Supports JSON records, CSV and Parquet.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog snapshot not found: {path}")

    ext = path.suffix.lower()
    if ext not in SUPPORTED_CATALOG_SUFFIXES:
        raise ValueError(
            f"Unsupported catalog format {ext!r}; expected one of {SUPPORTED_CATALOG_SUFFIXES}"
        )

    logger.info("Loading catalog snapshot from {}", path)
    if ext == ".json":
        df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    elif ext == ".csv":
        df = pd.read_csv(path, encoding="utf-8")
    else:
        df = pd.read_parquet(path)
    logger.info("Loaded {} rows from catalog snapshot", len(df))
    return df


def load_catalog_snapshot(path: Path = CATALOG_SNAPSHOT_PATH) -> List[CatalogEntry]:
    """
    Convenience helper: load → normalize → CatalogEntry list.
    """
    df = normalize_catalog_df(load_catalog_frame(path))
    entries = entries_from_frame(df)
    logger.info("Catalog snapshot ready with {} products", len(entries))
    return entries
