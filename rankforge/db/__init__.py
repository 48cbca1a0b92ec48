from rankforge.db.database import build_engine, drop_db, get_session, init_db
from rankforge.db.operations import (
    advance_to_model,
    advance_to_row,
    append_advance,
    count_advances,
    delete_last_advance,
    get_advances,
    load_advance_history,
    load_modifiers,
    load_requirement_trees,
    replace_advance_history,
)

__all__ = [
    "advance_to_model",
    "advance_to_row",
    "append_advance",
    "build_engine",
    "count_advances",
    "delete_last_advance",
    "drop_db",
    "get_advances",
    "get_session",
    "init_db",
    "load_advance_history",
    "load_modifiers",
    "load_requirement_trees",
    "replace_advance_history",
]
