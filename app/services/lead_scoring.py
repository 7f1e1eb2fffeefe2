"""Sales qualification score for inbound contacts (0-100, pure)."""

INDUSTRY_SCORES = {
    "healthcare": 25,
    "dental": 25,
    "beauty": 20,
    "legal": 20,
    "real_estate": 15,
    "fitness": 15,
    "other": 10,
}
DEFAULT_INDUSTRY_SCORE = 10

PAIN_POINT_SCORES = {
    "missed_calls": 30,
    "scheduling_chaos": 25,
    "no_after_hours": 20,
    "manual_processes": 20,
    "customer_complaints": 25,
    "staff_overwhelmed": 20,
}
DEFAULT_PAIN_POINT_SCORE = 10

TIMELINE_SCORES = {
    "immediately": 20,
    "this_month": 15,
    "next_month": 10,
}

BASE_CONTRACT_VALUES = {
    "healthcare": 500,
    "dental": 400,
    "beauty": 300,
    "legal": 600,
    "real_estate": 400,
    "fitness": 250,
}
DEFAULT_CONTRACT_VALUE = 300

HOT_THRESHOLD = 70
WARM_THRESHOLD = 40
MAX_SCORE = 100


def _as_number(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def _size_score(current_size: float) -> int:
    # sweet spot is 2-20 employees
    if 2 <= current_size <= 20:
        return 25
    if 21 <= current_size <= 50:
        return 20
    if current_size >= 1:
        return 15
    return 0


def _budget_score(budget: float) -> int:
    if budget >= 500:
        return 20
    if budget >= 200:
        return 15
    if budget >= 100:
        return 10
    return 0


def score_lead(
    business_type: str | None,
    current_size: int | float | str | None,
    pain_point: str | None,
    budget: int | float | str | None,
    timeline: str | None,
) -> int:
    size = _as_number(current_size)
    score = (
        INDUSTRY_SCORES.get(business_type or "", DEFAULT_INDUSTRY_SCORE)
        + _size_score(size)
        + PAIN_POINT_SCORES.get(pain_point or "", DEFAULT_PAIN_POINT_SCORE)
        + _budget_score(_as_number(budget))
        + TIMELINE_SCORES.get(timeline or "", 0)
    )
    return min(score, MAX_SCORE)


def qualification(score: int) -> str:
    if score >= HOT_THRESHOLD:
        return "hot"
    if score >= WARM_THRESHOLD:
        return "warm"
    return "cold"


def next_steps(score: int) -> list[str]:
    if score >= HOT_THRESHOLD:
        return ["immediate_demo_booking", "send_roi_calculator", "executive_intro_call"]
    if score >= WARM_THRESHOLD:
        return ["send_case_studies", "nurture_email_sequence", "follow_up_in_week"]
    return ["add_to_newsletter", "send_educational_content", "follow_up_in_month"]


def estimated_value(business_type: str | None, current_size: int | float | str | None) -> int:
    """Monthly contract estimate: base value times a size multiplier capped at 3x."""
    base = BASE_CONTRACT_VALUES.get(business_type or "", DEFAULT_CONTRACT_VALUE)
    multiplier = min(_as_number(current_size) / 10, 3)
    return round(base * multiplier)
