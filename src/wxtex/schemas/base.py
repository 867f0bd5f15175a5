"""Base Pydantic model with strict defaults for wxtex configs.

All wxtex config schemas inherit from this base so parameter, user and
internal configs validate the same way.
"""

from pydantic import BaseModel, ConfigDict


class WxtexBaseModel(BaseModel):
    """Base model for all wxtex configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Converts enums to their values
    - Strips whitespace from strings
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
