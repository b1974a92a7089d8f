"""Small shared helpers: money conversion, ids and timestamps."""

from .ids import new_id, utcnow_iso
from .money import CENT, from_cents, to_cents, to_decimal

__all__ = ["new_id", "utcnow_iso", "CENT", "from_cents", "to_cents", "to_decimal"]
