"""Closed set of renderable layers and the store variables behind them."""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wxtex.schemas import InternalConfig

__all__ = ['Layer', 'SCALAR_LAYERS', 'store_variables']


class Layer(str, Enum):
    """Renderable layer.

    Scalar layers (temperature, rain, pressure) share the scalar encoder but
    each keeps its own texture cache; wind is the only vector layer.
    """
    TEMPERATURE = "temperature"
    RAIN = "rain"
    PRESSURE = "pressure"
    WIND = "wind"

    @property
    def is_vector(self) -> bool:
        return self is Layer.WIND


SCALAR_LAYERS = (Layer.TEMPERATURE, Layer.RAIN, Layer.PRESSURE)


def store_variables(layer: Layer, config: "InternalConfig") -> tuple[str, ...]:
    """Return the store variable name(s) backing ``layer``.

    Scalar layers map to one variable; wind maps to its (u, v) pair.
    """
    names = config.variables
    match layer:
        case Layer.TEMPERATURE:
            return (names.temperature,)
        case Layer.RAIN:
            return (names.rain,)
        case Layer.PRESSURE:
            return (names.pressure,)
        case Layer.WIND:
            return (names.wind_u, names.wind_v)
    raise ValueError(f"Unknown layer: {layer!r}")
