from __future__ import annotations

from dataclasses import dataclass

from .config import StoreConfig


@dataclass(frozen=True, slots=True)
class SQLDialect:
    """Identifier quoting, parameter style and DDL types for one database driver."""

    name: str
    quote_char: str
    placeholder: str
    insert_ignore: str
    truncate: str
    session_id_type: str
    expires_type: str
    data_type: str
    user_type: str
    # pyformat drivers run %-interpolation over the whole statement.
    escape_percent: bool = False

    def quote(self, identifier: str) -> str:
        quoted = identifier.replace(self.quote_char, self.quote_char * 2)
        if self.escape_percent:
            quoted = quoted.replace("%", "%%")
        return f"{self.quote_char}{quoted}{self.quote_char}"


MYSQL = SQLDialect(
    name="mysql",
    quote_char="`",
    placeholder="%s",
    insert_ignore="INSERT IGNORE INTO",
    truncate="TRUNCATE TABLE {table}",
    session_id_type="varchar(128)",
    expires_type="bigint",
    data_type="mediumtext",
    user_type="varchar(255)",
    escape_percent=True,
)

SQLITE = SQLDialect(
    name="sqlite",
    quote_char='"',
    placeholder="?",
    insert_ignore="INSERT OR IGNORE INTO",
    truncate="DELETE FROM {table}",
    session_id_type="TEXT",
    expires_type="INTEGER",
    data_type="TEXT",
    user_type="TEXT",
)

DIALECTS = {dialect.name: dialect for dialect in (MYSQL, SQLITE)}


def get_dialect(name: str) -> SQLDialect:
    try:
        return DIALECTS[name]
    except KeyError:
        raise ValueError(f"Unsupported SQL dialect: {name}") from None


class SessionStatements:
    """Parameterized statements for the configured session table.

    Table and column names are quoted identifiers baked into the text once.
    Every value is left as a placeholder for the driver to bind.
    """

    def __init__(self, config: StoreConfig, dialect: SQLDialect) -> None:
        q = dialect.quote
        p = dialect.placeholder
        columns = config.column_names
        table = q(config.table_name)
        sid = q(columns.session_id)
        expires = q(columns.expires)
        data = q(columns.data)
        user = q(columns.user)
        all_columns = f"{sid}, {data}, {expires}, {user}"

        self.dialect = dialect
        self.create_table = (
            f"CREATE TABLE IF NOT EXISTS {table} (\n"
            f"    {sid} {dialect.session_id_type} PRIMARY KEY NOT NULL,\n"
            f"    {expires} {dialect.expires_type} NOT NULL,\n"
            f"    {data} {dialect.data_type} NOT NULL,\n"
            f"    {user} {dialect.user_type} NOT NULL\n"
            ")"
        )
        self.select_one = f"SELECT {data} FROM {table} WHERE {sid} = {p} AND {expires} >= {p}"
        self.select_active = f"SELECT {all_columns} FROM {table} WHERE {expires} >= {p}"
        self.select_expired = f"SELECT {all_columns} FROM {table} WHERE {expires} < {p}"
        self.count_active = f"SELECT COUNT(*) FROM {table} WHERE {expires} >= {p}"
        self.count_expired = f"SELECT COUNT(*) FROM {table} WHERE {expires} < {p}"
        self.delete_one = f"DELETE FROM {table} WHERE {sid} = {p}"
        self.delete_user = f"DELETE FROM {table} WHERE {user} = {p}"
        self.delete_expired = f"DELETE FROM {table} WHERE {expires} < {p}"
        self.truncate = dialect.truncate.format(table=table)
        self.insert_ignore = (
            f"{dialect.insert_ignore} {table} ({all_columns}) VALUES ({p}, {p}, {p}, {p})"
        )
        self.update_one = f"UPDATE {table} SET {data} = {p}, {expires} = {p} WHERE {sid} = {p}"
