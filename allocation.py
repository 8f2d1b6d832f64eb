import logging
import math
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

BASELINE_STAFF_PCT = 0.8
HELPER_CAP_RATIO = 0.5
PERCENT_EPSILON = 1e-5
CURRENCY_SYMBOL = "€"


class StaffMember(BaseModel):
    id: str
    name: str = ""
    share: float = 0.0


class Helper(BaseModel):
    id: str
    name: str = ""
    hours: float = 0.0


class ResultRow(BaseModel):
    id: str
    name: str
    amount: float
    cents: int
    percent_of_group: float


class Violator(BaseModel):
    id: str
    name: str
    amount: float


class Rationale(BaseModel):
    adjusted: bool = False
    baseline_staff_pct: float = BASELINE_STAFF_PCT
    violators: List[Violator] = Field(default_factory=list)
    helper_max: Optional[float] = None
    full_share: Optional[float] = None
    threshold: Optional[float] = None


class Results(BaseModel):
    applied_staff_pct: float
    applied_helper_pct: float
    staff_rows: List[ResultRow]
    helper_rows: List[ResultRow]
    staff_pot: float
    helper_pot: float
    explanation: str
    rationale: Rationale = Field(default_factory=Rationale)


def clamp_weight(value) -> float:
    """Negative, missing and non-finite weights count as 0."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(v) or v < 0:
        return 0.0
    return v


def to_cents(amount: float) -> int:
    # half-up; amounts too large to express in cents count as 0
    if isinstance(amount, Fraction):
        return math.floor(amount * 100 + Fraction(1, 2))
    scaled = amount * 100
    if not math.isfinite(scaled):
        return 0
    return int(math.floor(scaled + 0.5))


def fmt_currency(amount: float) -> str:
    """Format like de-DE currency: 1.234,56 €"""
    text = f"{amount:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{text} {CURRENCY_SYMBOL}"


def fmt_percent(fraction: float) -> str:
    text = f"{fraction * 100:.1f}".replace(".", ",")
    if text.endswith(",0"):
        text = text[:-2]
    return f"{text} %"


def _exact(value) -> Fraction:
    if isinstance(value, Fraction):
        return max(value, Fraction(0))
    return Fraction(clamp_weight(value))


def round_group(entries: Sequence[dict], group_total: float) -> List[ResultRow]:
    """
    Turn raw (fractional-cent) entitlements into cent amounts that add up to
    `group_total` rounded to cents, using the largest remainder method.

    Each entry is a dict with keys id, name, raw. The raw amounts are scaled
    exactly onto the integer cent target before flooring, so at most one cent
    per entry is left over. Entries with equal remainders keep their input
    order when the leftover cents are handed out.
    """
    if not entries:
        return []

    n = len(entries)
    raws = [_exact(e['raw']) for e in entries]
    raw_sum = sum(raws)
    target = max(0, to_cents(group_total))

    if raw_sum == 0:
        base, extra = divmod(target, n)
        floored = [base + (1 if i < extra else 0) for i in range(n)]
    else:
        exact = [target * r / raw_sum for r in raws]
        floored = [math.floor(x) for x in exact]
        leftover = target - sum(floored)
        # 0 <= leftover < n; largest remainder first
        order = sorted(range(n), key=lambda i: floored[i] - exact[i])
        for i in order[:leftover]:
            floored[i] += 1

    group_sum = sum(floored) / 100
    denom = max(group_sum, PERCENT_EPSILON)
    rows = []
    for e, cents in zip(entries, floored):
        amount = round(cents / 100, 2)
        rows.append(ResultRow(
            id=str(e['id']),
            name=e.get('name') or '',
            amount=amount,
            cents=cents,
            percent_of_group=amount / denom,
        ))
    return rows


def full_share_value(p: float, total: float, sum_w: float) -> float:
    """Payout of a staff member with share 1.0 at staff fraction p."""
    return p * total / sum_w


def max_helper_value(p: float, total: float, r_h: float) -> float:
    """Payout of the best-paid helper at staff fraction p."""
    return (1 - p) * total * r_h


def solve_split(total: float, sum_w: float, sum_h: float, helper_weights: Sequence[float]) -> Tuple[float, float, bool]:
    """
    Pick the staff fraction p so that the best-paid helper gets at most half of
    one full staff share. The 80/20 baseline is kept whenever it already
    satisfies that; otherwise p is solved for equality.

    Returns (p, q, adjusted). Expects total > 0, sum_w > 0 and sum_h > 0.
    """
    r_h = (max(helper_weights) / sum_h) if helper_weights and sum_h > 0 else 0.0
    p0 = BASELINE_STAFF_PCT
    if max_helper_value(p0, total, r_h) <= HELPER_CAP_RATIO * full_share_value(p0, total, sum_w):
        return p0, 1 - p0, False

    k = sum_w * r_h / HELPER_CAP_RATIO
    p = min(1.0, max(0.0, k / (k + 1)))
    logger.debug("guardrail violated at baseline, staff fraction raised to %.6f", p)
    return p, 1 - p, True


def find_violators(total: float, sum_w: float, sum_h: float, helpers: Sequence[Helper]) -> List[Violator]:
    """Helpers whose baseline payout would exceed the guardrail threshold, best paid first."""
    p0 = BASELINE_STAFF_PCT
    threshold = HELPER_CAP_RATIO * full_share_value(p0, total, sum_w)
    out = []
    for h in helpers:
        amount = (1 - p0) * total * clamp_weight(h.hours) / sum_h
        if amount > threshold:
            out.append(Violator(id=h.id, name=h.name, amount=amount))
    out.sort(key=lambda v: v.amount, reverse=True)
    return out


def _explain(rationale: Rationale, p: float, q: float) -> str:
    split = f"{fmt_percent(p)} Stammpersonal / {fmt_percent(q)} Aushilfen"
    if not rationale.adjusted:
        return (
            f"Standardaufteilung {split}. Die bestbezahlte Aushilfe erhält "
            f"{fmt_currency(rationale.helper_max)} und bleibt damit unter der Hälfte eines vollen "
            f"Anteils ({fmt_currency(rationale.threshold)} von {fmt_currency(rationale.full_share)})."
        )
    names = ", ".join(
        f"{v.name or '—'} ({fmt_currency(v.amount)})" for v in rationale.violators
    )
    baseline = fmt_percent(rationale.baseline_staff_pct)
    return (
        f"Bei {baseline} Stammpersonal hätten diese Aushilfen mehr als die Hälfte eines vollen "
        f"Anteils erhalten: {names}. Angepasste Aufteilung {split}: die bestbezahlte Aushilfe "
        f"erhält jetzt {fmt_currency(rationale.helper_max)}, genau die Hälfte eines vollen Anteils "
        f"von {fmt_currency(rationale.full_share)}."
    )


def compute_results(total: float, staff: Sequence[StaffMember], helpers: Sequence[Helper]) -> Results:
    """
    Split the pot between staff and helpers and apportion each group to cents.

    Never raises: negative or non-finite inputs are clamped, and the degenerate
    cases (no pot, no staff, no helpers) each get a defined result.
    """
    try:
        total = float(total)
    except (TypeError, ValueError):
        total = 0.0
    staff_w = [clamp_weight(s.share) for s in staff]
    helper_w = [clamp_weight(h.hours) for h in helpers]
    sum_w = sum(staff_w)
    sum_h = sum(helper_w)

    if not math.isfinite(total * 100) or total <= 0:
        return Results(
            applied_staff_pct=BASELINE_STAFF_PCT,
            applied_helper_pct=1 - BASELINE_STAFF_PCT,
            staff_rows=[],
            helper_rows=[],
            staff_pot=0.0,
            helper_pot=0.0,
            explanation="Bitte einen Trinkgeldbetrag größer als 0 eingeben.",
        )

    rationale = Rationale()
    if sum_w == 0 and sum_h == 0:
        return Results(
            applied_staff_pct=0.0,
            applied_helper_pct=1.0,
            staff_rows=[],
            helper_rows=[],
            staff_pot=0.0,
            helper_pot=0.0,
            explanation="Keine Anteile und keine Stunden erfasst, es gibt niemanden auszuzahlen.",
        )
    elif sum_w == 0:
        p, q = 0.0, 1.0
        explanation = "Kein Stammpersonal mit Anteil erfasst: 100 % gehen nach Stunden an die Aushilfen."
    elif sum_h == 0:
        p, q = 1.0, 0.0
        explanation = "Keine Aushilfsstunden erfasst: 100 % gehen nach Anteilen an das Stammpersonal."
    else:
        p, q, adjusted = solve_split(total, sum_w, sum_h, helper_w)
        r_h = max(helper_w) / sum_h
        full_share = full_share_value(p, total, sum_w)
        rationale = Rationale(
            adjusted=adjusted,
            violators=find_violators(total, sum_w, sum_h, helpers) if adjusted else [],
            helper_max=max_helper_value(p, total, r_h),
            full_share=full_share,
            threshold=HELPER_CAP_RATIO * full_share,
        )
        explanation = _explain(rationale, p, q)

    total_cents = to_cents(total)
    staff_cents = math.floor(total_cents * Fraction(p) + Fraction(1, 2))
    staff_pot = Fraction(staff_cents, 100)
    helper_pot = Fraction(total_cents - staff_cents, 100)

    staff_rows = []
    if staff and sum_w > 0:
        exact_w = sum(Fraction(w) for w in staff_w)
        staff_rows = round_group(
            [{'id': s.id, 'name': s.name, 'raw': staff_pot * Fraction(w) / exact_w} for s, w in zip(staff, staff_w)],
            staff_pot,
        )
    helper_rows = []
    if helpers and sum_h > 0:
        exact_h = sum(Fraction(w) for w in helper_w)
        helper_rows = round_group(
            [{'id': h.id, 'name': h.name, 'raw': helper_pot * Fraction(w) / exact_h} for h, w in zip(helpers, helper_w)],
            helper_pot,
        )

    return Results(
        applied_staff_pct=p,
        applied_helper_pct=q,
        staff_rows=staff_rows,
        helper_rows=helper_rows,
        staff_pot=sum(r.cents for r in staff_rows) / 100,
        helper_pot=sum(r.cents for r in helper_rows) / 100,
        explanation=explanation,
        rationale=rationale,
    )
