"""UserConfig: Forgiving, minimal user-facing configuration.

Accepts flat keys with uppercase aliases (STORE_URL -> store_url,
LAYERS -> layers) as well as nested section overrides for advanced users.
Users only specify what they want to override from the expert defaults.
"""

from typing import Optional, Any
from pydantic import Field, field_validator
from wxtex.schemas.base import WxtexBaseModel


class UserSelectionConfig(WxtexBaseModel):
    """User-facing selection config."""
    layers: Optional[list[str]] = None
    wind_enabled: Optional[bool] = None
    range_days: Optional[int] = None

    @field_validator("layers", mode="before")
    @classmethod
    def normalize_layers(cls, v):
        if isinstance(v, str):
            v = [v]
        if v is None:
            return v
        return [item.lower().strip() if isinstance(item, str) else item for item in v]


class UserEncodingConfig(WxtexBaseModel):
    """User-facing encoding config."""
    wind_max_speed: Optional[float] = None
    degenerate_epsilon: Optional[float] = None


class UserConfig(WxtexBaseModel):
    """User-facing configuration schema.

    Usage
    -----
        user_cfg = UserConfig(
            STORE_URL="gs://bucket/preds.zarr",
            LAYERS=["rain"],
            WIND_ENABLED=False,
        )

        internal = resolve_config(param_cfg, user_cfg)
    """

    # Flat aliases
    store_url: Optional[str] = Field(None, alias="STORE_URL")
    consolidated: Optional[bool] = Field(None, alias="CONSOLIDATED")
    layers: Optional[list[str]] = Field(None, alias="LAYERS")
    wind_enabled: Optional[bool] = Field(None, alias="WIND_ENABLED")
    range_days: Optional[int] = Field(None, alias="RANGE_DAYS")
    wind_max_speed: Optional[float] = Field(None, alias="WIND_MAX_SPEED")
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="LOG_FILE")

    # Nested overrides (advanced users)
    variables: Optional[dict[str, str]] = None
    coords: Optional[dict[str, str]] = None
    encoding: Optional[UserEncodingConfig] = None
    selection: Optional[UserSelectionConfig] = None
    worker: Optional[dict[str, Any]] = None

    model_config = WxtexBaseModel.model_config.copy()
    # Ignore unknown legacy keys
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("layers", mode="before")
    @classmethod
    def normalize_layers(cls, v):
        """Accept a single name or a list; lowercase everything."""
        if v is None:
            return v
        if isinstance(v, str):
            v = [v]
        return [item.lower().strip() if isinstance(item, str) else item for item in v]

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @field_validator("wind_max_speed", mode="before")
    @classmethod
    def coerce_numeric(cls, v):
        """Accept int or float."""
        if v is not None:
            return float(v)
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        store = {}
        if self.store_url is not None:
            store["url"] = self.store_url
        if self.consolidated is not None:
            store["consolidated"] = self.consolidated
        if store:
            overrides["store"] = store

        if self.variables:
            overrides["variables"] = dict(self.variables)
        if self.coords:
            overrides["coords"] = dict(self.coords)

        encoding = {}
        if self.wind_max_speed is not None:
            encoding["wind_max_speed"] = self.wind_max_speed
        if self.encoding is not None:
            encoding.update(self.encoding.model_dump(exclude_none=True))
        if encoding:
            overrides["encoding"] = encoding

        selection = {}
        if self.layers is not None:
            selection["layers"] = self.layers
        if self.wind_enabled is not None:
            selection["wind_enabled"] = self.wind_enabled
        if self.range_days is not None:
            selection["range_days"] = self.range_days
        if self.selection is not None:
            selection.update(self.selection.model_dump(exclude_none=True))
        if selection:
            overrides["selection"] = selection

        if self.worker:
            overrides["worker"] = dict(self.worker)

        logging_cfg = {}
        if self.log_level is not None:
            logging_cfg["level"] = self.log_level
        if self.log_file is not None:
            logging_cfg["file"] = self.log_file
        if logging_cfg:
            overrides["logging"] = logging_cfg

        return overrides
