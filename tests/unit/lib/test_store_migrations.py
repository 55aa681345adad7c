from huddle.lib.store import connect, connection, ensure, migrations


def test_migrations_are_numbered_and_ordered():
    names = [name for name, _ in migrations.load_migrations()]
    assert names == sorted(names)
    assert names[0].startswith("001_")


def test_migrate_is_rerunnable(tmp_path):
    conn = connect(tmp_path / "huddle.db")
    migs = migrations.load_migrations()

    assert migrations.migrate(conn, migs) == [name for name, _ in migs]
    assert migrations.migrate(conn, migs) == []

    applied = [row[0] for row in conn.execute("SELECT name FROM _migrations")]
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()

    assert len(applied) == len(migs)
    assert "nodes" in tables


def test_migrate_runs_only_new_files(tmp_path):
    conn = connect(tmp_path / "huddle.db")
    first = [("001_a", "CREATE TABLE a (id TEXT)")]
    migrations.migrate(conn, first)

    assert migrations.migrate(conn, [*first, ("002_b", "CREATE TABLE b (id TEXT)")]) == ["002_b"]
    conn.close()


def test_connect_uses_wal_and_autocommit(tmp_path):
    conn = connect(tmp_path / "huddle.db")
    assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    assert conn.isolation_level is None
    conn.close()


def test_ensure_caches_connection_per_database(test_huddle):
    conn = ensure()
    assert ensure() is conn
    assert connection.db_path() == test_huddle / "huddle.db"
    assert conn.execute("SELECT COUNT(*) FROM _migrations").fetchone()[0] == len(
        migrations.load_migrations()
    )
