from prowflake.storage.sqlite_store import SQLiteHistoryStore, SCHEMA_VERSION
