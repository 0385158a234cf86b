"""CO2 reward math: trees saved and points earned for a reuse purchase.

The CO2 figure itself comes from the marketplace API; this module only turns
it into the numbers shown next to the price.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

# CO2 a single tree absorbs in one year.
TREE_CO2_KG_PER_YEAR = 10


@dataclass(frozen=True)
class Reward:
    tree_years: Optional[float]
    tree_points: Optional[int]

    def to_dict(self):
        return {'tree_years': self.tree_years, 'tree_points': self.tree_points}


def round_half_up(value, places=0):
    """Round like a person would: 0.25 -> 0.3, 2.5 -> 3."""
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def compute_reward(co2_kg) -> Reward:
    """Convert an estimated CO2 saving into tree-years and tree points.

    tree_years is CO2 / TREE_CO2_KG_PER_YEAR rounded half-up to one decimal.
    tree_points is tree_years rounded to the nearest integer with a floor of
    1 for any positive figure. Both are None when the estimate is missing
    and points are None when tree_years is not positive.
    """
    if co2_kg is None or isinstance(co2_kg, bool):
        return Reward(None, None)
    try:
        value = float(co2_kg)
    except (TypeError, ValueError):
        return Reward(None, None)
    if not math.isfinite(value):
        return Reward(None, None)

    years = round_half_up(Decimal(str(value)) / TREE_CO2_KG_PER_YEAR, 1)
    points = None
    if years > 0:
        points = max(1, int(round_half_up(years)))
    return Reward(float(years), points)


def format_tree_years(reward: Reward) -> Optional[str]:
    if reward.tree_years is None:
        return None
    return f'{reward.tree_years:.1f}'
