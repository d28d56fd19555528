"""
Text utilities for product codes and product names.

Catalog names come from the ERP with Turkish characters and mixed case,
so comparisons fold accents before tokenizing.
"""

import re
import unicodedata
from typing import Any, Optional

from utils.number_utils import round_half_up

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")

# Letters NFD does not decompose into base + mark
_EXTRA_FOLDS = str.maketrans({"ı": "i", "ß": "ss", "ø": "o", "æ": "ae"})


def normalize_text(value: Any) -> str:
    """
    Stringify and strip a raw value.

    None becomes an empty string so lookups keyed on codes never see "None".
    """
    if value is None:
        return ""
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    """Return the stripped text, or None when it is empty."""
    text = normalize_text(value)
    return text or None


def fold_accents(text: str) -> str:
    """
    Lowercase and strip accent marks.

    - "Çelik Vida" → "celik vida"
    - "KIRMIZI İP" → "kirmizi ip"
    """
    lowered = text.lower().translate(_EXTRA_FOLDS)

    # NFD separates base chars from accents; drop the combining marks (Mn)
    decomposed = unicodedata.normalize("NFD", lowered)
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def tokenize(text: Any) -> set[str]:
    """Split a product name into its distinct alphanumeric word tokens."""
    folded = fold_accents(normalize_text(text))
    return {token for token in _TOKEN_SPLIT.split(folded) if token}


def name_similarity(source: Any, candidate: Any) -> int:
    """
    Percentage of the source name's tokens found in the candidate name.

    Asymmetric on purpose: a long candidate name is not penalised for the
    extra words it carries.

    Returns:
        Integer 0-100, or 0 when either side has no tokens
    """
    source_tokens = tokenize(source)
    candidate_tokens = tokenize(candidate)
    if not source_tokens or not candidate_tokens:
        return 0

    overlap = len(source_tokens & candidate_tokens)
    return round_half_up(overlap / len(source_tokens) * 100)
