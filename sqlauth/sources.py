"""
sqlauth/sources.py -- Load authentication sources from a JSON file.

File format (top-level object keyed by auth_id):

    {
        "example-sql": {
            "type": "sqlauth:SQL",
            "dsn": "mysql:host=db;dbname=idp",
            "username": "idp_reader",
            "password": "secret",
            "query": "SELECT uid, password, email FROM users WHERE uid = :username",
            "use_password_verify": true
        },
        "admin-userpass": {"type": "exampleauth:UserPass", ...}
    }

Entries whose "type" names another module are skipped with a warning so one
file can be shared with a host that serves other source kinds. A missing
"type" is taken to mean sqlauth:SQL.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from sqlauth.errors import ConfigError
from sqlauth.source import SQLAuthSource

logger = logging.getLogger("sqlauth.sources")

SOURCE_TYPE = "sqlauth:SQL"


def load_authsources(path: str | Path) -> dict[str, SQLAuthSource]:
    """Read the authsources file and construct every sqlauth:SQL source in it.

    Raises ConfigError if the file cannot be read, is not JSON, is not an
    object, or any sqlauth entry fails validation.
    """
    file_path = Path(path)
    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Could not read authsources file '{file_path}': {exc}") from None
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Authsources file '{file_path}' is not valid JSON: {exc}") from None

    if not isinstance(raw, dict):
        raise ConfigError(f"Authsources file '{file_path}' must contain a JSON object")

    sources: dict[str, SQLAuthSource] = {}
    for auth_id, entry in raw.items():
        if isinstance(entry, dict):
            source_type = entry.get("type", SOURCE_TYPE)
            if source_type != SOURCE_TYPE:
                logger.warning("Skipping authentication source %s of type %r", auth_id, source_type)
                continue
        sources[auth_id] = SQLAuthSource(auth_id, entry)

    logger.info("Loaded %d SQL authentication source(s) from %s", len(sources), file_path)
    return sources
