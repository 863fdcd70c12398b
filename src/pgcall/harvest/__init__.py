"""pgcall.harvest - read function signatures from DDL or a live database."""

from pgcall.harvest.catalog import harvest_catalog, harvest_database
from pgcall.harvest.ddl import harvest_sql, harvest_sql_files

__all__ = [
    "harvest_catalog",
    "harvest_database",
    "harvest_sql",
    "harvest_sql_files",
]
