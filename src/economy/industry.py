"""Goods, labors, and the recipe each labor follows."""

from dataclasses import dataclass
from enum import StrEnum


class Good(StrEnum):
    """Tradeable goods, in matrix row order."""

    LOG = "LOG"    # kg
    WOOD = "WOOD"  # kg
    MEAT = "MEAT"  # kg
    FOOD = "FOOD"


class Labor(StrEnum):
    """Labor types, in matrix column order."""

    LUMBERJACK = "LUMBERJACK"
    CARPENTER = "CARPENTER"
    FISHER = "FISHER"
    HUNTER = "HUNTER"
    COOK = "COOK"


GOODS: tuple[Good, ...] = tuple(Good)
LABORS: tuple[Labor, ...] = tuple(Labor)


@dataclass(frozen=True)
class Industry:
    """Per-laborer input consumption and output production per tick."""

    inputs: tuple[tuple[Good, float], ...]
    outputs: tuple[tuple[Good, float], ...]


INDUSTRIES: dict[Labor, Industry] = {
    Labor.LUMBERJACK: Industry(
        inputs=(),
        outputs=((Good.LOG, 10.0),),
    ),
    Labor.CARPENTER: Industry(
        inputs=((Good.LOG, 10.0),),
        outputs=((Good.WOOD, 10.0),),
    ),
    Labor.FISHER: Industry(
        inputs=((Good.WOOD, 0.1),),
        outputs=((Good.MEAT, 1.0),),
    ),
    Labor.HUNTER: Industry(
        inputs=(),
        outputs=((Good.MEAT, 1.0),),
    ),
    Labor.COOK: Industry(
        inputs=((Good.WOOD, 0.2), (Good.MEAT, 1.0)),
        outputs=((Good.FOOD, 1.0),),
    ),
}


def industry_for(labor: Labor) -> Industry:
    return INDUSTRIES[labor]
