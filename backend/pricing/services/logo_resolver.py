"""
Logo resolution for branding charges.

Artwork references come from a parallel list of "reference items" that is not
guaranteed to match the basket in order, count or shape. Resolution order for
a charge:

  1. the charge's own logo
  2. the line default: same-index reference item, then composite-key match
  3. the first logo found anywhere in the reference items
  4. None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .normalizer import BRANDING_ALIASES, first_present
from .utils import clean, first_string

logger = logging.getLogger(__name__)

KEY_PARTS = (
    ("stock_id", "stockId"),
    ("stock_header_id", "stockHeaderId"),
    ("itemNumber", "item_code"),
    ("colour", "color"),
    ("size",),
)

NESTED_LOGO_FIELDS = ("branding_items", "brandingItems", "branding")


def _first_nested_logo(ref: Mapping[str, Any], container: str) -> Optional[str]:
    rows = ref.get(container)
    if not isinstance(rows, (list, tuple)) or not rows:
        return None
    head = rows[0]
    if not isinstance(head, Mapping):
        return None
    return clean(first_string(head.get("logoFile")))


def extract_item_logo(ref: Any) -> Optional[str]:
    """Logo of a reference item, trying the direct field then each nested branding shape."""
    if not isinstance(ref, Mapping):
        return None
    logo = clean(first_string(ref.get("logoFile")))
    if logo:
        return logo
    for container in NESTED_LOGO_FIELDS:
        logo = _first_nested_logo(ref, container)
        if logo:
            return logo
    return None


def item_key(ref: Any) -> str:
    """Loose identity used to pair basket lines with reference items, e.g. '123|45|abc|navy|xl'."""
    if not isinstance(ref, Mapping):
        return ""
    parts = [first_present(ref, keys) for keys in KEY_PARTS]
    return "|".join(str(p) for p in parts if p).lower()


@dataclass
class LogoIndex:
    by_index: List[Optional[str]] = field(default_factory=list)
    by_key: Dict[str, str] = field(default_factory=dict)
    global_default: Optional[str] = None

    @classmethod
    def build(cls, reference_items: Optional[Sequence[Any]]) -> "LogoIndex":
        refs = list(reference_items or [])
        by_index = [extract_item_logo(r) for r in refs]
        by_key: Dict[str, str] = {}
        for ref, logo in zip(refs, by_index):
            k = item_key(ref)
            if k and logo and k not in by_key:
                by_key[k] = logo
        global_default = next((logo for logo in by_index if logo), None)
        return cls(by_index=by_index, by_key=by_key, global_default=global_default)

    def line_logo(self, index: int, raw_line: Any) -> Optional[str]:
        """Same-position match first, then composite key. No global fallback."""
        if 0 <= index < len(self.by_index) and self.by_index[index]:
            return self.by_index[index]
        k = item_key(raw_line)
        if k and k in self.by_key:
            return self.by_key[k]
        return None

    def default_logo_for(self, index: int, raw_line: Any) -> Optional[str]:
        return self.line_logo(index, raw_line) or self.global_default


def resolve_logo(
    raw_line: Any,
    branding_index: int,
    reference_items: Optional[Sequence[Any]],
    line_index: int = 0,
) -> Optional[str]:
    """
    Logo for one branding charge of a basket line.

    `line_index` is the position of the line in the basket; reference items
    at the same position are preferred over key matches.
    """
    own = None
    if isinstance(raw_line, Mapping):
        branding = raw_line.get("branding")
        if isinstance(branding, (list, tuple)) and 0 <= branding_index < len(branding):
            row = branding[branding_index]
            if isinstance(row, Mapping):
                own = clean(first_string(first_present(row, BRANDING_ALIASES["logo_file"])))
    if own:
        return own

    logo = LogoIndex.build(reference_items).default_logo_for(line_index, raw_line)
    if logo is None:
        logger.debug("No logo resolved for line %s branding %s", line_index, branding_index)
    return logo
