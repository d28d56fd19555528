"""
Substitution models: ranked replacement products for shortage lines.
"""

from typing import Optional

from models.base import BaseSchema


class SubstituteCandidate(BaseSchema):
    """Replacement product for a shortage line."""

    product_code: str
    product_name: str
    unit: str
    category_name: Optional[str] = None
    stock_qty: float
    score: float
    reason: str
    image_url: Optional[str] = None


class SubstitutionSuggestion(BaseSchema):
    """Shortage line with its top candidates (possibly none)."""

    order_number: str
    customer_code: str
    customer_name: str
    line_key: str
    source_product_code: str
    source_product_name: str
    category_name: Optional[str] = None
    needed_qty: float
    shortage_qty: float
    candidates: list[SubstituteCandidate]


class SubstitutionSummary(BaseSchema):
    lines_needing_substitution: int = 0
    lines_with_suggestion: int = 0
    unresolved_lines: int = 0


class SubstitutionSnapshot(BaseSchema):
    """Substitution result."""

    summary: SubstitutionSummary
    suggestions: list[SubstitutionSuggestion]
