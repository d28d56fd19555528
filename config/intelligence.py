"""
Scoring weights and capacity constants for the operations engines.

Each engine reads one frozen structure from here. Tests and callers can pass
a modified copy (dataclasses.replace) to tune a single weight without touching
control flow.
"""

from dataclasses import dataclass, field


# =============================================================================
# TIME
# =============================================================================

HOUR_SECONDS = 60 * 60
DAY_SECONDS = 24 * HOUR_SECONDS


# =============================================================================
# ATP
# =============================================================================

@dataclass(frozen=True)
class AtpWeights:
    """Priority score inputs for ATP order ranking."""
    none_coverage_bonus: float = 25
    partial_coverage_bonus: float = 12
    age_hours_divisor: float = 6
    age_cap: float = 20
    shortage_cap: float = 40


# =============================================================================
# PICK WAVES
# =============================================================================

@dataclass(frozen=True)
class WaveConfig:
    """Capacity bounds and time estimate for pick waves."""
    max_orders: int = 8
    max_lines: int = 70
    minutes_per_line: float = 1.25
    minutes_per_shortage_unit: float = 0.35
    min_minutes: int = 10
    lines_per_picker: int = 35
    max_pickers: int = 4
    fallback_series: str = "OTHER"


# =============================================================================
# SUBSTITUTION
# =============================================================================

@dataclass(frozen=True)
class SubstitutionWeights:
    """Candidate ranking for shortage-line substitutes."""
    max_lines: int = 80
    max_candidates: int = 4
    same_brand_bonus: float = 35
    stock_cap: float = 200
    stock_divisor: float = 2
    similarity_weight: float = 0.2
    image_bonus: float = 5
    similarity_reason_threshold: int = 50


# =============================================================================
# CUSTOMER INTENT
# =============================================================================

@dataclass(frozen=True)
class IntentWeights:
    """Engagement, commerce and recency weights for intent scoring."""
    activity_window_days: int = 14
    commerce_window_days: int = 30

    page_view: float = 0.8
    product_view: float = 1.4
    cart_add: float = 4
    cart_update: float = 2
    search: float = 2
    active_minute: float = 0.6
    click: float = 0.04

    order_count: float = 7
    order_amount_divisor: float = 5000
    open_cart_bonus: float = 12

    # (max days since last activity, score); first match wins
    recency_steps: tuple = ((1, 18), (3, 10), (7, 4), (14, 0))
    recency_stale: float = -12
    recency_never: float = -10

    hot_threshold: int = 70
    warm_threshold: int = 40
    churn_high_days: int = 21
    churn_medium_days: int = 14


# =============================================================================
# CREDIT RISK
# =============================================================================

@dataclass(frozen=True)
class RiskWeights:
    """Credit exposure scoring and decision thresholds."""
    past_due_cap: float = 45
    past_due_ratio_weight: float = 25
    past_due_base: float = 10
    total_balance_cap: float = 20
    total_balance_ratio_weight: float = 6
    not_due_cap: float = 10
    not_due_ratio_weight: float = 3
    missing_credit_penalty: float = 12
    pending_days_grace: int = 2
    pending_days_cap: float = 10
    blocked_label_penalty: float = 40
    watch_label_penalty: float = 20
    blocked_label_patterns: tuple = ("BLOCK", "BLOK", "STOP")
    watch_label_patterns: tuple = ("RISK", "KRITIK", "TAKIP", "WATCH")

    block_score: int = 80
    block_past_due_ratio: float = 1.2
    block_past_due_floor: float = 7500
    review_score: int = 50
    review_past_due_floor: float = 1000


# =============================================================================
# DATA QUALITY
# =============================================================================

@dataclass(frozen=True)
class DataQualityConfig:
    """Health score penalty settings for catalog checks."""
    sample_size: int = 8
    count_cap: int = 30
    max_vat_rate: float = 0.3
    min_name_length: int = 4
    reserve_tolerance: float = 0.0001
    severity_weights: dict = field(default_factory=lambda: {
        "CRITICAL": 3,
        "HIGH": 2,
        "MEDIUM": 1,
        "LOW": 0.5,
    })


DEFAULT_ATP_WEIGHTS = AtpWeights()
DEFAULT_WAVE_CONFIG = WaveConfig()
DEFAULT_SUBSTITUTION_WEIGHTS = SubstitutionWeights()
DEFAULT_INTENT_WEIGHTS = IntentWeights()
DEFAULT_RISK_WEIGHTS = RiskWeights()
DEFAULT_DATA_QUALITY_CONFIG = DataQualityConfig()
