from rankforge.parsers.records import (
    decode_advance,
    decode_enum,
    decode_modifier,
    decode_requirement,
    decode_requirement_trees,
    group_modifiers,
    load_catalog,
)

__all__ = [
    "decode_advance",
    "decode_enum",
    "decode_modifier",
    "decode_requirement",
    "decode_requirement_trees",
    "group_modifiers",
    "load_catalog",
]
