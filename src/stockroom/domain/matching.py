from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .models import Product


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


class ProductMatcher(Protocol):
    def find_match(self, name: str, catalog: Sequence[Product]) -> Optional[Product]:
        ...


def _exact(norm_name: str, catalog: Sequence[Product]) -> Optional[Product]:
    for product in catalog:
        if normalize_name(product.name) == norm_name:
            return product
    return None


class ExactNameMatcher:
    """Case-insensitive, trimmed equality only."""

    def find_match(self, name: str, catalog: Sequence[Product]) -> Optional[Product]:
        norm = normalize_name(name)
        if not norm:
            return None
        return _exact(norm, catalog)


class SubstringNameMatcher:
    """Exact match first, then the first bidirectional substring hit.

    Tolerates OCR truncation ("h. pan" inside "harina pan" style hits) and
    accepts false positives on very short names.
    """

    def find_match(self, name: str, catalog: Sequence[Product]) -> Optional[Product]:
        norm = normalize_name(name)
        if not norm:
            return None
        hit = _exact(norm, catalog)
        if hit is not None:
            return hit
        for product in catalog:
            candidate = normalize_name(product.name)
            if not candidate:
                continue
            if norm in candidate or candidate in norm:
                return product
        return None


def edit_distance(left: str, right: str) -> int:
    """Levenshtein distance, one row of the DP table kept in memory."""
    if len(left) < len(right):
        left, right = right, left
    row = list(range(len(right) + 1))
    for i, lc in enumerate(left, start=1):
        diagonal, row[0] = row[0], i
        for j, rc in enumerate(right, start=1):
            above = row[j]
            row[j] = min(above + 1, row[j - 1] + 1, diagonal + (lc != rc))
            diagonal = above
    return row[-1]


class EditDistanceMatcher:
    """Exact match first, then the nearest name within `ratio` of the longer length."""

    def __init__(self, ratio: float = 0.2, min_length: int = 3) -> None:
        self.ratio = ratio
        self.min_length = min_length

    def find_match(self, name: str, catalog: Sequence[Product]) -> Optional[Product]:
        norm = normalize_name(name)
        if not norm:
            return None
        hit = _exact(norm, catalog)
        if hit is not None:
            return hit
        best: Optional[Product] = None
        best_key = ""
        best_dist = 10**9
        for product in catalog:
            candidate = normalize_name(product.name)
            if len(candidate) < self.min_length:
                continue
            d = edit_distance(norm, candidate)
            if d < best_dist:
                best_dist = d
                best = product
                best_key = candidate
        if best is None:
            return None
        thr = max(1, round(self.ratio * max(len(best_key), len(norm))))
        return best if best_dist <= thr else None


DEFAULT_MATCHER: ProductMatcher = SubstringNameMatcher()


def find_match(
    name: str,
    catalog: Sequence[Product],
    matcher: Optional[ProductMatcher] = None,
) -> Optional[Product]:
    return (matcher or DEFAULT_MATCHER).find_match(name, catalog)
