from app.core.config import DummyUnitPolicy, Settings, parse_cors_origins


def test_parse_cors_origins_csv():
    value = "http://localhost:5173, http://localhost:3000"
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:5173", "https://draws.example.com"]'
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "https://draws.example.com",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:5173,http://localhost:5173"
    assert parse_cors_origins(value) == ["http://localhost:5173"]


def test_dummy_unit_policy_defaults_to_uncapped():
    settings = Settings(secret_key="x", database_url="sqlite://")
    assert settings.dummy_unit_policy == DummyUnitPolicy.UNCAPPED


def test_dummy_unit_policy_from_env(monkeypatch):
    monkeypatch.setenv("DUMMY_UNIT_POLICY", "capped_with_scaled_fallback")
    settings = Settings(secret_key="x", database_url="sqlite://")
    assert settings.dummy_unit_policy == DummyUnitPolicy.CAPPED_WITH_SCALED_FALLBACK
