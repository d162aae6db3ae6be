"""Draw announcement: credit every real winner or announce nothing.

Phase 1 works out each winner's reservation and checks it can be applied
without touching any row. Phase 2 applies all reservations, stores the
DrawResult and completes the slot under a single commit.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.orm import Session

from app.core.errors import (
    AnnouncementAborted,
    AnnouncementTooEarly,
    ResultAlreadyAnnounced,
    ResultNotFound,
    ServiceError,
    ValidationFailed,
)
from app.models import Bid, DrawResult, Slot, SlotStatus, SlotType, Wallet
from app.services.bidding import (
    aggregate_collected,
    aggregate_units_by_combo,
    aggregate_units_by_number,
    list_bids_for_combo,
    list_bids_for_number,
)
from app.services.payout import PayoutPlan, build_cosmetic_units, compute_payout, pick_auto_winner
from app.services.settings import PricingSnapshot, build_snapshot, get_app_settings
from app.services.slots import get_slot, slots_due_for_auto_announce
from app.services.wallet import credit_winning
from app.utils.dates import as_utc, utcnow
from app.utils.numbers import combo_key, parse_combo, validate_jp_combo, validate_ld_number

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "SYSTEM"

Actor = Union[int, str]


@dataclass(frozen=True)
class CreditIntent:
    user_id: int
    bid_id: int
    units: int
    amount: Decimal


@dataclass
class AnnouncementOutcome:
    draw: DrawResult
    plan: PayoutPlan
    credits: list[CreditIntent] = field(default_factory=list)
    auto_selected: bool = False


def _winner_key(slot: Slot, winning_number: Optional[int], winning_combo) -> str:
    if slot.type == SlotType.LD:
        if winning_number is None:
            raise ValidationFailed("winning_number required for LD")
        return str(validate_ld_number(winning_number))
    if not winning_combo:
        raise ValidationFailed("winning_combo required for JP")
    return combo_key(validate_jp_combo(parse_combo(winning_combo)))


def _units_by_key(db: Session, slot: Slot) -> dict[str, int]:
    if slot.type == SlotType.LD:
        return {str(number): units for number, units in aggregate_units_by_number(db, slot.id).items()}
    return aggregate_units_by_combo(db, slot.id)


def _winning_bids(db: Session, slot: Slot, key: str) -> list[Bid]:
    if slot.type == SlotType.LD:
        return list_bids_for_number(db, slot.id, int(key))
    return list_bids_for_combo(db, slot.id, key)


def _prepare_credits(
    db: Session, slot: Slot, plan: PayoutPlan, bids: list[Bid]
) -> tuple[list[CreditIntent], list[dict]]:
    if plan.payout_to_real <= 0:
        return [], []

    intents: list[CreditIntent] = []
    failures: list[dict] = []
    wallet_exists: dict[int, bool] = {}
    for bid in bids:
        units = bid.count if slot.type == SlotType.LD else 1
        amount = plan.payout_for(units)
        if bid.user_id not in wallet_exists:
            wallet_exists[bid.user_id] = (
                db.query(Wallet.id).filter(Wallet.user_id == bid.user_id).first() is not None
            )

        if amount <= 0:
            failures.append({"user_id": bid.user_id, "bid_id": bid.id, "reason": "PAYOUT_ROUNDS_TO_ZERO"})
        elif not wallet_exists[bid.user_id]:
            failures.append({"user_id": bid.user_id, "bid_id": bid.id, "reason": "WALLET_NOT_FOUND"})
        else:
            intents.append(CreditIntent(user_id=bid.user_id, bid_id=bid.id, units=units, amount=amount))
    return intents, failures


def _compute(
    slot: Slot,
    snapshot: PricingSnapshot,
    units_by_key: dict[str, int],
    collected,
    key: Optional[str],
    rng: random.Random,
) -> tuple[str, PayoutPlan, bool]:
    if key is None:
        candidate = pick_auto_winner(
            slot.type,
            units_by_key,
            collected,
            snapshot.winning_prize,
            snapshot.min_profit_pct,
            policy=snapshot.policy,
            max_units_per_number=snapshot.max_units_per_number,
            rng=rng,
        )
        return candidate.key, candidate.plan, True

    plan = compute_payout(
        snapshot.winning_prize,
        units_by_key.get(key, 0),
        collected,
        snapshot.min_profit_pct,
        policy=snapshot.policy,
        max_units_per_number=snapshot.max_units_per_number,
        rng=rng,
    )
    return key, plan, False


def announce_result(
    db: Session,
    actor_id: Actor,
    slot_id: int,
    *,
    winning_number: Optional[int] = None,
    winning_combo=None,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> AnnouncementOutcome:
    """Announce a slot's winner. With no selector the most profitable key is picked."""
    now = now or utcnow()
    rng = rng or random.Random()

    slot = get_slot(db, slot_id, lock=True)
    if slot.status == SlotStatus.COMPLETED or db.query(DrawResult.id).filter(DrawResult.slot_id == slot.id).first():
        raise ResultAlreadyAnnounced()
    if now <= as_utc(slot.window_close_at):
        raise AnnouncementTooEarly()
    selected_key = None
    if winning_number is not None or winning_combo:
        selected_key = _winner_key(slot, winning_number, winning_combo)
    if slot.status == SlotStatus.OPEN:
        # Close first so an aborted announcement still leaves the slot CLOSED.
        slot.status = SlotStatus.CLOSED
        db.commit()
        slot = get_slot(db, slot_id, lock=True)

    snapshot = build_snapshot(get_app_settings(db), slot.type, slot.settings_json)
    collected = aggregate_collected(db, slot.id)
    units_by_key = _units_by_key(db, slot)

    key, plan, auto_selected = _compute(slot, snapshot, units_by_key, collected, selected_key, rng)
    intents, failures = _prepare_credits(db, slot, plan, _winning_bids(db, slot, key))

    if failures:
        db.rollback()
        logger.warning(
            "Announcement aborted slot=%s winner=%s failures=%s",
            slot.unique_slot_id,
            key,
            failures,
        )
        raise AnnouncementAborted(failures)

    cosmetic = build_cosmetic_units(slot.type, key, plan.total_units, units_by_key, rng)
    meta = {
        "actor_id": actor_id,
        "collected": str(collected),
        "min_profit_pct": str(snapshot.min_profit_pct),
        "max_allowed_payout": str(plan.max_allowed_payout),
        "winning_prize": str(snapshot.winning_prize),
        "scaled": plan.scaled,
        "policy": snapshot.policy.value,
        "mode": slot.type.value,
        "auto_selected": auto_selected,
        "cosmetic_units": cosmetic,
    }
    if note:
        meta["note"] = note

    try:
        for intent in intents:
            credit_winning(
                db,
                intent.user_id,
                intent.amount,
                slot_id=slot.id,
                bid_id=intent.bid_id,
                units=intent.units,
                commit=False,
            )
        draw = DrawResult(
            slot_id=slot.id,
            winner=key,
            dummy_units=plan.dummy_units,
            total_units=plan.total_units,
            per_unit_payout=plan.per_unit_payout,
            payout_total=plan.payout_to_real,
            meta=meta,
        )
        db.add(draw)
        slot.status = SlotStatus.COMPLETED
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(draw)
    logger.info(
        "Result announced slot=%s winner=%s real=%s dummy=%s unit=%s payout=%s actor=%s",
        slot.unique_slot_id,
        key,
        plan.real_units,
        plan.dummy_units,
        plan.per_unit_payout,
        plan.payout_to_real,
        actor_id,
    )
    return AnnouncementOutcome(draw=draw, plan=plan, credits=intents, auto_selected=auto_selected)


def get_draw_result(db: Session, slot_id: int) -> DrawResult:
    get_slot(db, slot_id)
    draw = db.query(DrawResult).filter(DrawResult.slot_id == slot_id).first()
    if not draw:
        raise ResultNotFound()
    return draw


def announce_due_slots(db: Session, now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> list[DrawResult]:
    """Auto-announce every closed slot whose draw time has passed."""
    announced = []
    for slot in slots_due_for_auto_announce(db, now):
        try:
            outcome = announce_result(db, SYSTEM_ACTOR, slot.id, now=now, rng=rng)
        except ServiceError as exc:
            # Left CLOSED; the next tick retries.
            logger.warning("Auto-announce skipped slot=%s: %s", slot.unique_slot_id, exc.detail)
            continue
        announced.append(outcome.draw)
    return announced
