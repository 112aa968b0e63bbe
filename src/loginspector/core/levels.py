"""Mapping of severity levels onto storage collections."""

# Levels whose collections are provisioned when the service starts.
BOOTSTRAP_LEVELS = ("info", "warn", "error")

_LEVEL_ALIASES = {
    "info": "info",
    "warn": "warn",
    "warning": "warn",
    "error": "error",
}


def collection_name_for(level: str) -> str:
    """Return the collection that stores records of the given level.

    Well-known levels match case-insensitively onto their canonical name
    ("WARNING" -> "warn"). Any other level is its own collection name.

    Args:
        level: Severity level as reported or queried.

    Returns:
        Collection name for the level.
    """
    return _LEVEL_ALIASES.get(level.lower(), level)


def quote_identifier(name: str) -> str:
    """Quote a name for use as an SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


# Tables and indexes share one SQLite namespace. Distinct prefixes keep
# every collection name usable, whatever the level is called.
TABLE_PREFIX = "log:"
INDEX_PREFIX = "idx:"


def table_name_for(collection: str) -> str:
    """Return the table holding a collection's records."""
    return f"{TABLE_PREFIX}{collection}"


def collection_from_table(table: str) -> str:
    """Return the collection stored in a table named by table_name_for()."""
    return table[len(TABLE_PREFIX) :]


def index_name_for(collection: str) -> str:
    """Return the name of the time index of a collection."""
    return f"{INDEX_PREFIX}{collection}:time"
