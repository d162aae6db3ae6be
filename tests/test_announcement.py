import random
from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.config import get_settings
from app.core.errors import (
    AnnouncementAborted,
    AnnouncementTooEarly,
    ResultAlreadyAnnounced,
    ResultNotFound,
    ValidationFailed,
)
from app.models import Bid, BidStatus, DrawResult, SlotStatus, SlotType, WalletTx, WalletTxType
from app.schemas.bid import BidCreate
from app.services.bidding import place_bid
from app.services.draws import SYSTEM_ACTOR, announce_due_slots, announce_result, get_draw_result
from app.services.scheduler import run_slot_lifecycle
from app.services.settings import update_app_settings
from app.services.slots import close_expired_slots, create_slot, get_slot, update_slot
from app.services.wallet import get_wallet
from app.utils.dates import as_utc, utcnow


def _after_draw(slot):
    return as_utc(slot.slot_time) + timedelta(minutes=1)


def _bid(db, agent, slot, number, count, phone="0711111111"):
    return place_bid(
        db,
        agent.id,
        BidCreate(slot_id=slot.id, customer_name="Ama", customer_phone=phone, number=number, count=count),
    )


@pytest.fixture
def priced_ld_slot(db):
    update_app_settings(db, {"bid_prize_ld": Decimal("10"), "winning_prize_ld": Decimal("100")})
    return create_slot(db, SlotType.LD, utcnow() + timedelta(hours=1))


@pytest.fixture
def two_agents(make_user):
    return make_user("0700000301"), make_user("0700000302")


def test_announce_reserves_winnings_for_every_real_winner(db, admin, two_agents, priced_ld_slot):
    a, b = two_agents
    _bid(db, a, priced_ld_slot, 7, 2)
    _bid(db, b, priced_ld_slot, 7, 3, phone="0733333333")
    _bid(db, a, priced_ld_slot, 9, 5)

    outcome = announce_result(db, admin.id, priced_ld_slot.id, winning_number=7, now=_after_draw(priced_ld_slot))

    draw = outcome.draw
    assert draw.winner == "7"
    assert draw.dummy_units == 1
    assert draw.total_units == 6
    assert draw.per_unit_payout == Decimal("16.67")
    assert draw.payout_total == Decimal("83.33")
    assert draw.meta["collected"] == "100.00"
    assert draw.meta["max_allowed_payout"] == "85.00"
    assert draw.meta["actor_id"] == admin.id
    assert draw.meta["auto_selected"] is False
    assert draw.meta["cosmetic_units"]["7"] == 6

    assert get_wallet(db, a.id).reserved_winning == Decimal("33.33")
    assert get_wallet(db, b.id).reserved_winning == Decimal("50.00")
    assert get_slot(db, priced_ld_slot.id).status == SlotStatus.COMPLETED
    assert len(outcome.credits) == 2
    assert db.query(WalletTx).filter(WalletTx.tx_type == WalletTxType.WIN_CREDIT).count() == 2


def test_second_announcement_is_rejected(db, admin, agent, priced_ld_slot):
    _bid(db, agent, priced_ld_slot, 7, 2)
    now = _after_draw(priced_ld_slot)
    announce_result(db, admin.id, priced_ld_slot.id, winning_number=7, now=now)

    with pytest.raises(ResultAlreadyAnnounced) as exc:
        announce_result(db, admin.id, priced_ld_slot.id, winning_number=7, now=now)

    assert exc.value.status_code == 409
    assert db.query(DrawResult).count() == 1
    assert db.query(WalletTx).filter(WalletTx.tx_type == WalletTxType.WIN_CREDIT).count() == 1


def test_failed_credit_aborts_whole_announcement(db, admin, agent, make_user, priced_ld_slot):
    _bid(db, agent, priced_ld_slot, 7, 2)
    walletless = make_user("0700000399", with_wallet=False)
    orphan = Bid(
        slot_id=priced_ld_slot.id,
        user_id=walletless.id,
        unique_bid_id=f"{priced_ld_slot.unique_slot_id}#0744444444#7#1",
        customer_name="Esi",
        customer_phone="0744444444",
        number=7,
        count=1,
        jp_numbers=[],
        amount=Decimal("10"),
        status=BidStatus.ACTIVE,
    )
    db.add(orphan)
    db.commit()
    orphan_id = orphan.id

    with pytest.raises(AnnouncementAborted) as exc:
        announce_result(db, admin.id, priced_ld_slot.id, winning_number=7, now=_after_draw(priced_ld_slot))

    assert exc.value.status_code == 409
    assert exc.value.failures == [
        {"user_id": walletless.id, "bid_id": orphan_id, "reason": "WALLET_NOT_FOUND"}
    ]
    assert db.query(DrawResult).count() == 0
    assert get_wallet(db, agent.id).reserved_winning == Decimal("0.00")
    assert db.query(WalletTx).filter(WalletTx.tx_type == WalletTxType.WIN_CREDIT).count() == 0
    assert get_slot(db, priced_ld_slot.id).status == SlotStatus.CLOSED


def test_announcement_before_window_close(db, admin, priced_ld_slot):
    with pytest.raises(AnnouncementTooEarly):
        announce_result(db, admin.id, priced_ld_slot.id, winning_number=7, now=utcnow())
    assert get_slot(db, priced_ld_slot.id).status == SlotStatus.OPEN


def test_no_real_winner_still_completes_slot(db, admin, agent, priced_ld_slot):
    _bid(db, agent, priced_ld_slot, 9, 3)

    outcome = announce_result(
        db, admin.id, priced_ld_slot.id, winning_number=7, now=_after_draw(priced_ld_slot), rng=random.Random(5)
    )

    assert outcome.draw.payout_total == Decimal("0.00")
    assert outcome.draw.dummy_units >= 2
    assert outcome.credits == []
    assert get_wallet(db, agent.id).reserved_winning == Decimal("0.00")
    assert get_draw_result(db, priced_ld_slot.id).winner == "7"


def test_jp_announcement_accepts_dashed_combo(db, admin, agent, jp_slot):
    place_bid(
        db,
        agent.id,
        BidCreate(slot_id=jp_slot.id, customer_name="Kofi", customer_phone="0722222222", jp_numbers=[10, 23, 31, 10, 1, 5]),
    )

    outcome = announce_result(
        db, admin.id, jp_slot.id, winning_combo="10-23-31-10-1-5", now=_after_draw(jp_slot), rng=random.Random(1)
    )

    assert outcome.draw.winner == "1-5-10-10-23-31"
    assert len(outcome.credits) == 1
    assert get_wallet(db, agent.id).reserved_winning == outcome.plan.payout_to_real
    assert outcome.plan.payout_to_real <= outcome.plan.max_allowed_payout


def test_result_lookup_before_announcement(db, ld_slot):
    with pytest.raises(ResultNotFound):
        get_draw_result(db, ld_slot.id)


def test_due_slots_are_auto_announced(db, agent, priced_ld_slot):
    _bid(db, agent, priced_ld_slot, 7, 2)
    _bid(db, agent, priced_ld_slot, 9, 2)
    now = _after_draw(priced_ld_slot)

    assert [slot.id for slot in close_expired_slots(db, now)] == [priced_ld_slot.id]
    announced = announce_due_slots(db, now=now, rng=random.Random(4))

    assert len(announced) == 1
    assert announced[0].winner in {"7", "9"}
    assert announced[0].meta["actor_id"] == SYSTEM_ACTOR
    assert announced[0].meta["auto_selected"] is True
    assert get_slot(db, priced_ld_slot.id).status == SlotStatus.COMPLETED


def test_scheduler_tick_closes_and_announces(db, session_factory):
    slot = create_slot(db, SlotType.LD, utcnow() - timedelta(minutes=1))

    result = run_slot_lifecycle(session_factory=session_factory, auto_announce=True)

    assert result == {"closed": 1, "announced": 1}
    db.expire_all()
    assert get_slot(db, slot.id).status == SlotStatus.COMPLETED
    assert get_draw_result(db, slot.id).payout_total == Decimal("0.00")


def test_scheduler_tick_only_closes_without_auto_announce(db, session_factory):
    slot = create_slot(db, SlotType.JP, utcnow() - timedelta(minutes=1))

    result = run_slot_lifecycle(session_factory=session_factory, auto_announce=False)

    assert result == {"closed": 1, "announced": 0}
    db.expire_all()
    assert get_slot(db, slot.id).status == SlotStatus.CLOSED


@pytest.fixture
def capped_policy(monkeypatch):
    monkeypatch.setenv("DUMMY_UNIT_POLICY", "capped_with_scaled_fallback")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_capped_policy_pays_ceiling_split_over_real_units(db, admin, two_agents, priced_ld_slot, capped_policy):
    a, b = two_agents
    update_app_settings(db, {"ld_bid_limit_per_number": 5})
    _bid(db, a, priced_ld_slot, 7, 2)
    _bid(db, b, priced_ld_slot, 7, 3, phone="0733333333")
    _bid(db, a, priced_ld_slot, 9, 5)

    outcome = announce_result(db, admin.id, priced_ld_slot.id, winning_number=7, now=_after_draw(priced_ld_slot))

    draw = outcome.draw
    assert draw.meta["scaled"] is True
    assert draw.meta["policy"] == "capped_with_scaled_fallback"
    assert draw.dummy_units == 0
    assert draw.per_unit_payout == Decimal("17.00")
    assert draw.payout_total == Decimal("85.00")
    assert get_wallet(db, a.id).reserved_winning == Decimal("34.00")
    assert get_wallet(db, b.id).reserved_winning == Decimal("51.00")


def test_payout_rounding_to_zero_aborts_announcement(db, admin, agent, priced_ld_slot):
    update_slot(db, priced_ld_slot.id, settings_json={"bid_prize": "0.01", "min_profit_pct": "0.6"})
    bids = [_bid(db, agent, priced_ld_slot, 7, 1, phone=f"071000000{i}") for i in range(3)]
    bid_ids = [bid.id for bid in bids]

    with pytest.raises(AnnouncementAborted) as exc:
        announce_result(db, admin.id, priced_ld_slot.id, winning_number=7, now=_after_draw(priced_ld_slot))

    assert exc.value.failures == [
        {"user_id": agent.id, "bid_id": bid_id, "reason": "PAYOUT_ROUNDS_TO_ZERO"} for bid_id in bid_ids
    ]
    assert db.query(DrawResult).count() == 0
    assert get_wallet(db, agent.id).reserved_winning == Decimal("0.00")
    assert get_slot(db, priced_ld_slot.id).status == SlotStatus.CLOSED


def test_invalid_selector_leaves_open_slot_untouched(db, admin, priced_ld_slot):
    with pytest.raises(ValidationFailed):
        announce_result(db, admin.id, priced_ld_slot.id, winning_number=40, now=_after_draw(priced_ld_slot))
    with pytest.raises(ValidationFailed):
        announce_result(db, admin.id, priced_ld_slot.id, winning_combo="1-2-3", now=_after_draw(priced_ld_slot))

    assert get_slot(db, priced_ld_slot.id).status == SlotStatus.OPEN
    assert db.query(DrawResult).count() == 0
