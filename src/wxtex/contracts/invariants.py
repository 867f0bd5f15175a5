"""Formal pipeline invariants.

This file documents what each stage MUST produce. Use it as a reviewer
anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "time_index": [
        "Timestamps are ISO-8601 strings with millisecond precision",
        "Timestamps are strictly increasing (no duplicates)",
        "Built once per dataset load, immutable afterwards",
    ],

    "slice": [
        "Values are 2D (lat, lon), already sliced at one time index",
        "Values are floating point; missing cells are NaN",
        "Slices are never cached, only their encoded textures",
    ],

    "texture": [
        "Pixels are uint8 RGBA, length width * height * 4",
        "width == lon dimension, height == lat dimension",
        "Rows are flipped vertically, columns rotated by half the lon dimension",
        "Missing values are fully transparent",
    ],

    "cache": [
        "At most one entry per (layer, time index)",
        "Entries are never overwritten once stored",
        "All layer caches are cleared together on dataset reload",
    ],

    "frame": [
        "One (texture, texture2, weight) per produced layer",
        "0 <= weight <= 1",
        "Unavailable layers are omitted, never partially filled",
    ],
}
