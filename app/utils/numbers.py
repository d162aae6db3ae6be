import re
from typing import Iterable, Union

from app.core.errors import ValidationFailed

NUMBER_MIN = 1
NUMBER_MAX = 37
JP_COMBO_SIZE = 6


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_ld_number(number) -> int:
    if not _is_int(number) or number < NUMBER_MIN or number > NUMBER_MAX:
        raise ValidationFailed(f"LD number must be between {NUMBER_MIN} and {NUMBER_MAX}")
    return number


def validate_jp_combo(numbers) -> list[int]:
    if not isinstance(numbers, (list, tuple)):
        raise ValidationFailed(f"JP requires an array of {JP_COMBO_SIZE} numbers")
    if len(numbers) != JP_COMBO_SIZE:
        raise ValidationFailed(f"JP requires exactly {JP_COMBO_SIZE} numbers")
    for n in numbers:
        if not _is_int(n) or n < NUMBER_MIN or n > NUMBER_MAX:
            raise ValidationFailed(f"Each JP number must be integer between {NUMBER_MIN} and {NUMBER_MAX}")
    # Repeats are allowed.
    return list(numbers)


def parse_combo(value: Union[str, Iterable[int], None]) -> list[int]:
    """Accept ``[10, 23, ...]``, ``"10-23-..."`` or ``"10,23,..."``."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = [p.strip() for p in re.split(r"[,\-]", value) if p.strip()]
        try:
            return [int(p) for p in parts]
        except ValueError:
            raise ValidationFailed("Winning combo must contain only numbers")
    return list(value)


def combo_key(numbers: Iterable[int]) -> str:
    return "-".join(str(n) for n in sorted(numbers))
