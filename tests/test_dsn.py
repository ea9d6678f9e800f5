"""
tests/test_dsn.py -- Unit tests for sqlauth/dsn.py.

Coverage:
  - driver_name(): scheme extraction, case folding
  - redact_dsn(): user=/password= masking, URL password masking
  - to_url(): both DSN spellings, credential precedence, malformed input
"""

import pytest

from sqlauth.dsn import driver_name, redact_dsn, to_url
from sqlauth.errors import ConfigError


class TestDriverName:
    def test_key_value_scheme(self):
        assert driver_name("mysql:host=db;dbname=idp") == "mysql"

    def test_scheme_is_lowercased(self):
        assert driver_name("PgSQL:host=db") == "pgsql"

    def test_url_scheme_keeps_driver_suffix(self):
        assert driver_name("postgresql+psycopg2://u@db/idp") == "postgresql+psycopg2"


class TestRedactDsn:
    def test_user_and_password_are_masked(self):
        redacted = redact_dsn("mysql:host=db;user=alice;password=s3cr3t;")
        assert "user=***" in redacted
        assert "password=***" in redacted
        assert "alice" not in redacted
        assert "s3cr3t" not in redacted

    def test_other_fragments_survive(self):
        assert redact_dsn("mysql:host=db;user=alice;dbname=idp") == "mysql:host=db;user=***;dbname=idp"

    def test_password_at_end_of_string(self):
        assert redact_dsn("pgsql:host=db;password=hunter2") == "pgsql:host=db;password=***"

    def test_dsn_without_secrets_is_unchanged(self):
        assert redact_dsn("mysql:host=db;dbname=idp") == "mysql:host=db;dbname=idp"

    def test_url_password_is_masked(self):
        redacted = redact_dsn("postgresql://app:topsecret@db:5432/idp")
        assert "topsecret" not in redacted
        assert "***" in redacted
        assert "db:5432/idp" in redacted


class TestToUrl:
    def test_sqlalchemy_url_passes_through(self):
        url = to_url("postgresql+psycopg2://db.internal:5432/idp")
        assert url.drivername == "postgresql+psycopg2"
        assert url.host == "db.internal"
        assert url.port == 5432
        assert url.database == "idp"

    def test_mysql_key_value_dsn(self):
        url = to_url("mysql:host=db;port=3307;dbname=idp;charset=utf8mb4")
        assert url.drivername == "mysql+pymysql"
        assert url.host == "db"
        assert url.port == 3307
        assert url.database == "idp"
        assert url.query["charset"] == "utf8mb4"

    def test_pgsql_key_value_dsn(self):
        url = to_url("pgsql:host=db;dbname=idp;sslmode=require")
        assert url.drivername == "postgresql+psycopg2"
        assert url.query["sslmode"] == "require"

    def test_sqlite_key_value_dsn(self):
        url = to_url("sqlite:/var/lib/idp/users.db")
        assert url.get_backend_name() == "sqlite"
        assert url.database == "/var/lib/idp/users.db"

    def test_sqlite_memory_dsn(self):
        assert to_url("sqlite::memory:").database == ":memory:"

    def test_configured_credentials_are_applied(self):
        url = to_url("mysql:host=db;dbname=idp", "reader", "pw")
        assert url.username == "reader"
        assert url.password == "pw"

    def test_configured_credentials_win_over_embedded(self):
        url = to_url("mysql:host=db;user=alice;password=s3cr3t", "reader", "pw")
        assert url.username == "reader"
        assert url.password == "pw"

    def test_empty_configured_credentials_fall_back_to_embedded(self):
        url = to_url("mysql:host=db;user=alice;password=s3cr3t", "", "")
        assert url.username == "alice"
        assert url.password == "s3cr3t"

    def test_sqlite_never_carries_credentials(self):
        url = to_url("sqlite:////tmp/users.db", "reader", "pw")
        assert url.username is None
        assert url.password is None

    def test_unknown_scheme_is_config_error(self):
        with pytest.raises(ConfigError, match="Unsupported DSN"):
            to_url("oracle:host=db")

    def test_non_numeric_port_is_config_error(self):
        with pytest.raises(ConfigError, match="port"):
            to_url("mysql:host=db;port=abc")

    def test_malformed_fragment_is_config_error(self):
        with pytest.raises(ConfigError, match="key=value"):
            to_url("mysql:host=db;garbage")

    def test_config_error_message_is_redacted(self):
        with pytest.raises(ConfigError) as excinfo:
            to_url("mysql:host=db;password=s3cr3t;port=x")
        assert "s3cr3t" not in str(excinfo.value)
