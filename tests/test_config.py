from errand_planner.config import Settings


def test_places_key_falls_back_to_maps_key():
    assert Settings(google_maps_api_key="maps").places_api_key == "maps"
    assert Settings(google_maps_api_key="maps", google_places_api_key="places").places_api_key == "places"


def test_allowed_origins_accept_csv_and_json():
    csv = Settings(frontend_allowed_origins="https://a.example, https://b.example")
    assert csv.frontend_allowed_origins == ("https://a.example", "https://b.example")

    assert Settings(frontend_allowed_origins='["https://c.example"]').frontend_allowed_origins == ("https://c.example",)
    assert Settings(frontend_allowed_origins="").frontend_allowed_origins == ()


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("ERRAND_CLUSTER_EVALUATION_WORKERS", "5")
    monkeypatch.setenv("ERRAND_JSON_LOGS", "false")

    loaded = Settings()

    assert loaded.cluster_evaluation_workers == 5
    assert loaded.json_logs is False
