import pytest
from sqlalchemy import text

from veridie import config
from veridie.database import engine
from veridie.utils.migrations import split_sql_statements

KEY = {"X-Setup-Key": "setup-secret"}


@pytest.fixture
def migrations_dir(tmp_path, monkeypatch):
    (tmp_path / "add-notes.sql").write_text(
        "-- notes kept by operators\n"
        "CREATE TABLE IF NOT EXISTS setup_notes (id INTEGER PRIMARY KEY, body TEXT);\n"
        "INSERT INTO setup_notes (body) VALUES ('first; with a semicolon');\n"
    )
    (tmp_path / "broken.sql").write_text("CREATE TABLE;")
    (tmp_path / "README.txt").write_text("not a migration")
    monkeypatch.setattr(config, "MIGRATIONS_DIR", tmp_path)
    yield tmp_path
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE IF EXISTS setup_notes"))


def test_setup_requires_key(client, migrations_dir):
    assert client.get("/api/setup/migrations").status_code == 403
    assert client.get("/api/setup/migrations", headers={"X-Setup-Key": "wrong"}).status_code == 403


def test_setup_disabled_without_secret(client, migrations_dir, monkeypatch):
    monkeypatch.setattr(config, "SETUP_SECRET", None)
    assert client.get("/api/setup/migrations", headers=KEY).status_code == 403


def test_list_migrations(client, migrations_dir):
    response = client.get("/api/setup/migrations", headers=KEY)
    assert response.json() == {"migrations": ["add-notes", "broken"]}


def test_run_migration(client, migrations_dir):
    response = client.post("/api/setup/add-notes", headers=KEY)

    assert response.status_code == 200
    assert response.json() == {"success": True, "migration": "add-notes", "statements": 2}
    with engine.connect() as conn:
        assert conn.execute(text("SELECT body FROM setup_notes")).scalar() == "first; with a semicolon"

    exists = client.get("/api/setup/column-exists?table=setup_notes&column=body", headers=KEY)
    missing = client.get("/api/setup/column-exists?table=setup_notes&column=author", headers=KEY)
    assert exists.json() == {"exists": True}
    assert missing.json() == {"exists": False}


def test_run_migration_errors(client, migrations_dir):
    assert client.post("/api/setup/Bad.Name", headers=KEY).status_code == 400
    assert client.post("/api/setup/nope", headers=KEY).status_code == 404
    assert client.post("/api/setup/broken", headers=KEY).status_code == 500


def test_column_exists_rejects_bad_identifiers(client, migrations_dir):
    response = client.get("/api/setup/column-exists?table=mentors;drop&column=id", headers=KEY)
    assert response.status_code == 400


def test_column_exists_for_model_table(client, migrations_dir):
    response = client.get("/api/setup/column-exists?table=mentors&column=calendly_refresh_token", headers=KEY)
    assert response.json() == {"exists": True}


def test_split_sql_statements():
    sql = """
    -- leading comment; not a statement
    CREATE TABLE a (note TEXT DEFAULT 'x;y');
    /* block; comment */
    CREATE FUNCTION f() RETURNS trigger AS $$
    BEGIN
      NEW.updated_at = now();
      RETURN NEW;
    END;
    $$ LANGUAGE plpgsql;
    SELECT 1
    """

    statements = split_sql_statements(sql)

    assert len(statements) == 3
    assert statements[0] == "CREATE TABLE a (note TEXT DEFAULT 'x;y')"
    assert "RETURN NEW;" in statements[1]
    assert statements[2] == "SELECT 1"


def test_split_sql_statements_with_tagged_dollar_quotes():
    sql = """
    CREATE FUNCTION touch() RETURNS trigger AS $body$
    BEGIN
      -- $$ inside a tagged body is plain text;
      NEW.updated_at = now();
      RETURN NEW;
    END;
    $body$ LANGUAGE plpgsql;
    CREATE TRIGGER touch_mentors BEFORE UPDATE ON mentors FOR EACH ROW EXECUTE FUNCTION touch();
    """

    statements = split_sql_statements(sql)

    assert len(statements) == 2
    assert statements[0].endswith("$body$ LANGUAGE plpgsql")
    assert "RETURN NEW;" in statements[0]
    assert statements[1].startswith("CREATE TRIGGER touch_mentors")
