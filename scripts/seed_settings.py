import argparse
from datetime import datetime, timedelta, timezone

from app.core.database import SessionLocal
from app.models import Slot, SlotType
from app.services.settings import get_app_settings
from app.services.slots import create_slot


def main():
    parser = argparse.ArgumentParser(description="Create the settings row and a few upcoming slots.")
    parser.add_argument("--hours", type=int, default=6, help="hourly slots to create per type")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        get_app_settings(db)
        start = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
        for hour in range(args.hours):
            slot_time = start + timedelta(hours=hour)
            for slot_type in (SlotType.LD, SlotType.JP):
                exists = db.query(Slot).filter(Slot.type == slot_type, Slot.slot_time == slot_time).first()
                if not exists:
                    create_slot(db, slot_type, slot_time)
    finally:
        db.close()


if __name__ == "__main__":
    main()
