import random
from dataclasses import dataclass
from typing import Hashable, List, Optional, Sequence, Tuple

from .errors import InsufficientFaces, InvalidGridSize

MIN_CARDS = 4

# First six are the classic set; the rest let larger boards deal distinct pairs.
DEFAULT_FACES = (
    "😂", "😍", "😭", "😩", "😌", "😎",
    "🤔", "😴", "🥳", "😡", "🤯", "🥶",
)


@dataclass(frozen=True)
class CardSlot:
    """One grid position (0-based, row-major) and the face dealt to it."""

    index: int
    face: Hashable


def grid_label(rows: int, columns: int) -> str:
    return f"{rows}x{columns}"


def parse_grid_label(label: str) -> Tuple[int, int]:
    """Turn an ``"RxC"`` mode label into ``(rows, columns)``."""
    try:
        rows_txt, cols_txt = str(label).lower().split('x')
        rows, columns = int(rows_txt), int(cols_txt)
    except (TypeError, ValueError):
        raise InvalidGridSize(f"Malformed grid label {label!r}, expected 'RxC'")
    validate_grid(rows, columns)
    return rows, columns


def validate_grid(rows: int, columns: int) -> None:
    """Reject grids that cannot be tiled with pairs.

    Both dimensions must be positive integers and the card count must be
    even and at least ``MIN_CARDS``.
    """
    if isinstance(rows, bool) or isinstance(columns, bool):
        raise InvalidGridSize("Grid dimensions must be integers")
    if not isinstance(rows, int) or not isinstance(columns, int):
        raise InvalidGridSize("Grid dimensions must be integers")
    if rows < 1 or columns < 1:
        raise InvalidGridSize(f"Grid {rows}x{columns} has a non-positive dimension")
    total = rows * columns
    if total % 2 != 0:
        raise InvalidGridSize(f"Grid {rows}x{columns} has an odd number of cards ({total})")
    if total < MIN_CARDS:
        raise InvalidGridSize(f"Grid {rows}x{columns} needs at least {MIN_CARDS} cards")


def build_deck(faces: Sequence[Hashable], pair_count: int,
               rng: Optional[random.Random] = None) -> List[Hashable]:
    """Deal ``pair_count`` distinct faces twice each, uniformly shuffled.

    Faces are sampled without replacement from the distinct values of
    ``faces`` (first-seen order), so a pool larger than needed yields a
    different subset each round. ``rng`` is the only source of randomness.
    """
    if pair_count < 1:
        raise InvalidGridSize(f"A deck needs at least one pair, got {pair_count}")
    pool = list(dict.fromkeys(faces))
    if pair_count > len(pool):
        raise InsufficientFaces(
            f"{pair_count} pairs requested but only {len(pool)} distinct faces available"
        )
    rng = rng or random.Random()
    chosen = rng.sample(pool, pair_count)
    deck = chosen * 2
    rng.shuffle(deck)
    return deck
