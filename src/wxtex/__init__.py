"""`wxtex` - weather field textures for GPU cross-fade rendering.

Subpackages:
- data: Time index, layer selection, chunked store adapter
- encoding: Scalar and wind RGBA encoders
- pipeline: Texture cache, wind worker, frame resolution, orchestration
- schemas: Pydantic configuration
- contracts: Stage invariants
"""

__version__ = "0.1.0"
