from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.errors import BiddingClosed, InsufficientFunds, SlotNotFound, ValidationFailed
from app.models import Bid, WalletTx, WalletTxType
from app.schemas.bid import BidCreate
from app.services.bidding import (
    aggregate_collected,
    aggregate_units_by_combo,
    aggregate_units_by_number,
    place_bid,
    remaining_count,
)
from app.services.slots import update_slot
from app.services.wallet import get_wallet
from app.utils.dates import utcnow


def _ld(slot, number=7, count=10, phone="0711111111"):
    return BidCreate(slot_id=slot.id, customer_name="Ama", customer_phone=phone, number=number, count=count)


def _jp(slot, numbers, phone="0722222222"):
    return BidCreate(slot_id=slot.id, customer_name="Kofi", customer_phone=phone, jp_numbers=numbers)


def test_ld_bid_debits_agent_and_credits_commission(db, agent, ld_slot):
    bid = place_bid(db, agent.id, _ld(ld_slot))

    assert bid.amount == Decimal("10.00")
    assert bid.unique_bid_id == f"{ld_slot.unique_slot_id}#0711111111#7#10"
    assert get_wallet(db, agent.id).total_balance == Decimal("-9.00")

    rows = db.query(WalletTx).order_by(WalletTx.id.asc()).all()
    assert [(row.tx_type, row.amount) for row in rows] == [
        (WalletTxType.BID_DEBIT, Decimal("-10.00")),
        (WalletTxType.COMMISSION_CREDIT, Decimal("1.00")),
    ]
    assert rows[0].meta["number"] == 7
    assert aggregate_collected(db, ld_slot.id) == Decimal("10.00")


def test_agent_commission_rate_overrides_default(db, make_user, ld_slot):
    agent = make_user("0700000200", commission_pct=Decimal("5"))

    place_bid(db, agent.id, _ld(ld_slot))

    assert get_wallet(db, agent.id).total_balance == Decimal("-9.50")


def test_per_number_cap_is_enforced(db, agent, ld_slot):
    place_bid(db, agent.id, _ld(ld_slot, count=75))
    balance = get_wallet(db, agent.id).total_balance

    with pytest.raises(ValidationFailed) as exc:
        place_bid(db, agent.id, _ld(ld_slot, count=10))

    assert "Remaining: 5" in exc.value.message
    assert remaining_count(db, ld_slot.id, 7) == {"number": 7, "used": 75, "max_count": 80, "remaining": 5}
    assert get_wallet(db, agent.id).total_balance == balance
    place_bid(db, agent.id, _ld(ld_slot, number=8, count=10))
    assert aggregate_units_by_number(db, ld_slot.id) == {7: 75, 8: 10}


def test_negative_limit_rolls_back_whole_bid(db, agent, ld_slot):
    update_slot(db, ld_slot.id, settings_json={"bid_prize": "10"})
    place_bid(db, agent.id, _ld(ld_slot, count=20))
    assert get_wallet(db, agent.id).total_balance == Decimal("-180.00")

    with pytest.raises(InsufficientFunds):
        place_bid(db, agent.id, _ld(ld_slot, count=5))

    assert get_wallet(db, agent.id).total_balance == Decimal("-180.00")
    assert db.query(Bid).count() == 1
    assert db.query(WalletTx).count() == 2


def test_bids_rejected_after_window_closes(db, agent, ld_slot):
    with pytest.raises(BiddingClosed):
        place_bid(db, agent.id, _ld(ld_slot), now=utcnow() + timedelta(hours=2))
    assert db.query(Bid).count() == 0


def test_ld_number_out_of_range(db, agent, ld_slot):
    with pytest.raises(ValidationFailed):
        place_bid(db, agent.id, _ld(ld_slot, number=38))
    with pytest.raises(ValidationFailed):
        place_bid(db, agent.id, _ld(ld_slot, count=0))


def test_unknown_slot(db, agent, ld_slot):
    with pytest.raises(SlotNotFound):
        place_bid(db, agent.id, BidCreate(slot_id=999, customer_name="A", customer_phone="0700", number=1, count=1))


def test_jp_bid_allows_repeats_and_sorts_key(db, agent, jp_slot):
    bid = place_bid(db, agent.id, _jp(jp_slot, [9, 3, 3, 20, 1, 37]))

    assert bid.amount == Decimal("5.00")
    assert bid.number is None
    assert bid.unique_bid_id == f"{jp_slot.unique_slot_id}#0722222222#1-3-3-9-20-37"
    assert aggregate_units_by_combo(db, jp_slot.id) == {"1-3-3-9-20-37": 1}


def test_jp_bid_needs_six_numbers(db, agent, jp_slot):
    with pytest.raises(ValidationFailed):
        place_bid(db, agent.id, _jp(jp_slot, [1, 2, 3, 4, 5]))
    with pytest.raises(ValidationFailed):
        place_bid(db, agent.id, _jp(jp_slot, [1, 2, 3, 4, 5, 0]))


def test_duplicate_bids_share_readable_id(db, agent, ld_slot):
    first = place_bid(db, agent.id, _ld(ld_slot, count=2))
    second = place_bid(db, agent.id, _ld(ld_slot, count=2))

    assert first.id != second.id
    assert first.unique_bid_id == second.unique_bid_id
