"""Loss-prevention payout engine.

Everything here is pure: callers pass the pricing parameters and a ``random.Random``
and get plain values back. Nothing in this module touches the database.

For a slot that collected ``collected`` and keeps ``min_profit_pct`` as profit,
the house pays real winners at most ``M = collected - collected * pct``. The
advertised prize ``W`` is split over ``R`` real units plus ``D`` dummy units;
``D`` is the smallest integer that keeps ``W / (R + D) * R <= M``.
"""
import random
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Optional

from app.core.config import DummyUnitPolicy
from app.models.slot import SlotType
from app.utils.numbers import JP_COMBO_SIZE, NUMBER_MAX, NUMBER_MIN, combo_key

CENT = Decimal("0.01")
ZERO = Decimal("0")

DISPLAY_UNIT_VALUE_MIN = 20
DISPLAY_UNIT_VALUE_MAX = 50
AUTO_PICK_CANDIDATES = 5

COSMETIC_BASE_MAX = 9
COSMETIC_JP_FILLER_COMBOS = 8


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


@dataclass(frozen=True)
class PayoutPlan:
    real_units: int
    dummy_units: int
    # Unrounded per-unit rate; per-winner payouts are derived from this.
    unit_rate: Decimal
    per_unit_payout: Decimal
    payout_to_real: Decimal
    max_allowed_payout: Decimal
    scaled: bool = False

    @property
    def total_units(self) -> int:
        return self.real_units + self.dummy_units

    def payout_for(self, units: int) -> Decimal:
        return _money(self.unit_rate * units)


def max_allowed_payout(collected, min_profit_pct) -> Decimal:
    collected = Decimal(str(collected))
    min_profit = _money(collected * Decimal(str(min_profit_pct)))
    return _money(collected - min_profit)


def _plan(real_units: int, dummy_units: int, rate: Decimal, ceiling: Decimal, scaled: bool = False) -> PayoutPlan:
    return PayoutPlan(
        real_units=real_units,
        dummy_units=dummy_units,
        unit_rate=rate,
        per_unit_payout=_money(rate),
        payout_to_real=_money(rate * real_units),
        max_allowed_payout=ceiling,
        scaled=scaled,
    )


def compute_payout(
    winning_prize,
    real_units: int,
    collected,
    min_profit_pct,
    *,
    policy: DummyUnitPolicy = DummyUnitPolicy.UNCAPPED,
    max_units_per_number: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> PayoutPlan:
    """Split the prize over real and dummy units. A missing cap leaves D uncapped."""
    rng = rng or random.Random()
    prize = Decimal(str(winning_prize))
    ceiling = max_allowed_payout(collected, min_profit_pct)
    capped = policy == DummyUnitPolicy.CAPPED_WITH_SCALED_FALLBACK and bool(max_units_per_number)

    if real_units <= 0:
        # Nobody real won; show a plausible crowd of dummy winners.
        if prize <= 0:
            return _plan(0, 0, ZERO, ceiling)
        display_value = rng.randint(DISPLAY_UNIT_VALUE_MIN, DISPLAY_UNIT_VALUE_MAX)
        dummy = _ceil(prize / display_value)
        if capped:
            dummy = min(dummy, max_units_per_number)
        return _plan(0, dummy, prize / dummy, ceiling)

    if ceiling <= 0:
        return _plan(real_units, 0, ZERO, ceiling, scaled=True)

    dummy = max(0, _ceil(prize * real_units / ceiling - real_units))
    if capped and real_units + dummy > max_units_per_number:
        return _plan(real_units, 0, ceiling / real_units, ceiling, scaled=True)
    return _plan(real_units, dummy, prize / (real_units + dummy), ceiling)


def _random_combo(rng: random.Random) -> list[int]:
    return sorted(rng.sample(range(NUMBER_MIN, NUMBER_MAX + 1), JP_COMBO_SIZE))


def random_filler_keys(slot_type: SlotType, rng: random.Random, count: int) -> list[str]:
    if slot_type == SlotType.LD:
        return [str(n) for n in rng.sample(range(NUMBER_MIN, NUMBER_MAX + 1), count)]
    keys: list[str] = []
    while len(keys) < count:
        key = combo_key(_random_combo(rng))
        if key not in keys:
            keys.append(key)
    return keys


def build_cosmetic_units(
    slot_type: SlotType,
    winner_key: str,
    total_units: int,
    real_units: dict[str, int],
    rng: Optional[random.Random] = None,
) -> dict[str, int]:
    """Display-only unit distribution. Must never feed a money computation."""
    rng = rng or random.Random()
    if slot_type == SlotType.LD:
        keys = [str(n) for n in range(NUMBER_MIN, NUMBER_MAX + 1)]
    else:
        keys = list(dict.fromkeys(list(real_units) + random_filler_keys(slot_type, rng, COSMETIC_JP_FILLER_COMBOS)))

    display = {key: real_units.get(key, 0) + rng.randint(1, COSMETIC_BASE_MAX) for key in keys if key != winner_key}
    winner_units = max(total_units, 1)

    others = list(display)
    for key in rng.sample(others, min(len(others), rng.randint(2, 3))):
        display[key] = winner_units + rng.randint(1, max(3, winner_units // 4))

    display[winner_key] = winner_units
    return display


@dataclass(frozen=True)
class WinnerCandidate:
    key: str
    real_units: int
    plan: PayoutPlan
    profit: Decimal


def pick_auto_winner(
    slot_type: SlotType,
    units_by_key: dict[str, int],
    collected,
    winning_prize,
    min_profit_pct,
    *,
    policy: DummyUnitPolicy = DummyUnitPolicy.UNCAPPED,
    max_units_per_number: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> WinnerCandidate:
    """Pick the number/combo that leaves the house the most profit.

    Only the few least-backed keys are considered; with no bids at all, random
    filler keys with zero units are used, which lands on the dummy-only branch.
    """
    if slot_type != SlotType.LD:
        max_units_per_number = None
    rng = rng or random.Random()
    pool = [(key, units) for key, units in units_by_key.items() if units > 0]
    if not pool:
        pool = [(key, 0) for key in random_filler_keys(slot_type, rng, AUTO_PICK_CANDIDATES)]

    rng.shuffle(pool)
    pool.sort(key=lambda item: item[1])

    collected = _money(Decimal(str(collected)))
    candidates = []
    for key, units in pool[:AUTO_PICK_CANDIDATES]:
        plan = compute_payout(
            winning_prize,
            units,
            collected,
            min_profit_pct,
            policy=policy,
            max_units_per_number=max_units_per_number,
            rng=rng,
        )
        candidates.append(WinnerCandidate(key=key, real_units=units, plan=plan, profit=collected - plan.payout_to_real))

    return max(candidates, key=lambda c: (c.profit, -c.real_units))
