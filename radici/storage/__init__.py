"""Storage for roster snapshots: JSON export files and the SQLite working copy."""

from radici.storage.snapshot import (
    default_export_name,
    dumps,
    export_snapshot,
    load_snapshot,
    loads,
    read_snapshot,
    write_snapshot,
)
from radici.storage.sqlite import RosterDatabase

__all__ = [
    "RosterDatabase",
    "default_export_name",
    "dumps",
    "export_snapshot",
    "load_snapshot",
    "loads",
    "read_snapshot",
    "write_snapshot",
]
