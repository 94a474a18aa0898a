"""
Indicator models

- IndicatorKind: Closed set of supported indicator computations
- IndicatorCategory: overlay (price pane) or oscillator (separate pane)
- IndicatorTemplate: Registry row with defaults
- IndicatorSpec: Validated request handed to the engine
- IndicatorPoint / IndicatorSeries: Engine output
- QueryResult: Bars + indicator series returned to the presentation layer
"""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.models.market_data import Bar, Period, SourceField


class IndicatorKind(str, Enum):
    """Supported indicator computations"""

    SMA = "sma"
    EMA = "ema"
    WMA = "wma"
    RSI = "rsi"
    MACD = "macd"
    BOLLINGER = "bollinger"
    KDJ = "kdj"


class IndicatorCategory(str, Enum):
    OVERLAY = "overlay"
    OSCILLATOR = "oscillator"


class IndicatorTemplate(BaseModel):
    """Named indicator preset (id → defaults)"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: IndicatorKind
    category: IndicatorCategory
    color: str
    line_width: int = 1
    params: dict[str, Any] = Field(default_factory=dict)


class IndicatorSpec(BaseModel):
    """
    Validated indicator request

    Built by IndicatorRegistry.build_spec(); params are already checked
    against the parameter model for `kind`.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: IndicatorKind
    category: IndicatorCategory
    params: dict[str, Any] = Field(default_factory=dict)
    source: SourceField = SourceField.CLOSE

    def fingerprint(self) -> dict[str, Any]:
        """Stable, identity-free representation used in cache keys"""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "params": dict(sorted(self.params.items())),
            "source": self.source.value,
        }


class IndicatorPoint(BaseModel):
    """Single indicator value; tuple for multi-line indicators"""

    model_config = ConfigDict(frozen=True)

    time: date
    value: float | tuple[float, ...]


class IndicatorSeries(BaseModel):
    """
    Indicator output aligned to a subset of the input bar times

    `fields` names the components of tuple values, e.g.
    ("macd", "signal", "histogram"). Single-line series use ("value",).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: IndicatorKind
    fields: tuple[str, ...] = ("value",)
    points: tuple[IndicatorPoint, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def times(self) -> list[date]:
        return [p.time for p in self.points]

    @property
    def values(self) -> list[float | tuple[float, ...]]:
        return [p.value for p in self.points]

    def line(self, name: str) -> list[IndicatorPoint]:
        """
        Extract one component as a single-line series

        Raises:
            KeyError: If name is not one of self.fields
        """
        if name not in self.fields:
            raise KeyError(f"{self.id}: no line '{name}' (have {', '.join(self.fields)})")
        if len(self.fields) == 1:
            return list(self.points)

        index = self.fields.index(name)
        return [IndicatorPoint(time=p.time, value=p.value[index]) for p in self.points]

    @classmethod
    def empty(cls, spec_id: str, kind: IndicatorKind, fields: tuple[str, ...] = ("value",)):
        return cls(id=spec_id, kind=kind, fields=fields)


class QueryResult(BaseModel):
    """Payload handed to the presentation layer and stored in the cache"""

    model_config = ConfigDict(frozen=True)

    instrument: str
    period: Period
    bars: tuple[Bar, ...] = ()
    indicators: dict[str, IndicatorSeries] = Field(default_factory=dict)

    @property
    def last_bar(self) -> Bar | None:
        return self.bars[-1] if self.bars else None
