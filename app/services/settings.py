import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import DummyUnitPolicy, get_settings
from app.models import AppSettings, SlotType

logger = logging.getLogger(__name__)

SETTINGS_DEFAULTS = {
    "bid_prize_ld": Decimal("1"),
    "bid_prize_jp": Decimal("5"),
    "winning_prize_ld": Decimal("3300"),
    "winning_prize_jp": Decimal("10000"),
    "min_profit_pct": Decimal("0.15"),
    "agent_negative_balance_limit": Decimal("200"),
    "default_commission_pct": Decimal("10"),
    "ld_bid_limit_per_number": 80,
}


@dataclass(frozen=True)
class PricingSnapshot:
    """Immutable per-call view of the prize/profit parameters for one slot type."""

    slot_type: SlotType
    bid_prize: Decimal
    winning_prize: Decimal
    min_profit_pct: Decimal
    negative_balance_limit: Decimal
    default_commission_pct: Decimal
    # Per-number unit cap; LD only. JP combos have no cap.
    max_units_per_number: Optional[int]
    policy: DummyUnitPolicy = DummyUnitPolicy.UNCAPPED


def _as_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def normalize_pct(value, fallback: Decimal = Decimal("0.15")) -> Decimal:
    raw = fallback if value is None else _as_decimal(value)
    # Admins sometimes type 15 meaning 15%.
    return raw / 100 if raw > 1 else raw


def get_app_settings(db: Session) -> AppSettings:
    settings = db.query(AppSettings).order_by(AppSettings.id.asc()).first()
    if not settings:
        settings = AppSettings(**SETTINGS_DEFAULTS)
        db.add(settings)
        db.commit()
        db.refresh(settings)
        logger.info("Created default app settings row id=%s", settings.id)
    return settings


def update_app_settings(db: Session, changes: dict) -> AppSettings:
    settings = get_app_settings(db)
    for field, value in changes.items():
        if value is None or field not in SETTINGS_DEFAULTS:
            continue
        setattr(settings, field, value)
    db.commit()
    db.refresh(settings)
    logger.info("App settings updated: %s", ", ".join(sorted(k for k, v in changes.items() if v is not None)))
    return settings


def build_snapshot(
    app_settings: AppSettings,
    slot_type: SlotType,
    slot_settings: Optional[dict] = None,
    policy: Optional[DummyUnitPolicy] = None,
) -> PricingSnapshot:
    """Merge the slot's creation-time snapshot over the live settings row."""
    overrides = slot_settings or {}
    if slot_type == SlotType.LD:
        bid_prize = app_settings.bid_prize_ld
        winning_prize = app_settings.winning_prize_ld
    else:
        bid_prize = app_settings.bid_prize_jp
        winning_prize = app_settings.winning_prize_jp

    return PricingSnapshot(
        slot_type=slot_type,
        bid_prize=_as_decimal(overrides.get("bid_prize", bid_prize)),
        winning_prize=_as_decimal(overrides.get("winning_prize", winning_prize)),
        min_profit_pct=normalize_pct(overrides.get("min_profit_pct", app_settings.min_profit_pct)),
        negative_balance_limit=_as_decimal(app_settings.agent_negative_balance_limit),
        default_commission_pct=_as_decimal(app_settings.default_commission_pct),
        max_units_per_number=int(app_settings.ld_bid_limit_per_number or 0) if slot_type == SlotType.LD else None,
        policy=policy or get_settings().dummy_unit_policy,
    )


def slot_settings_snapshot(app_settings: AppSettings, slot_type: SlotType) -> dict:
    snapshot = build_snapshot(app_settings, slot_type)
    return {
        "bid_prize": str(snapshot.bid_prize),
        "winning_prize": str(snapshot.winning_prize),
        "min_profit_pct": str(snapshot.min_profit_pct),
    }
