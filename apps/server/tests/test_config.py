from config import NewsFeedConfig, Settings


def test_settings_defaults():
    settings = Settings()
    assert settings.app_name == "WaterLab Server"
    assert settings.port == 5001
    assert settings.snapshot_cache_ttl == 900
    assert settings.socrata_cache_ttl == 300
    assert settings.news_cache_ttl == 600
    assert settings.news_max_articles == 8
    assert settings.news_feeds == [NewsFeedConfig(url="https://www.unwater.org/rss.xml", source="UN Water")]
    assert settings.snapshot_path.endswith("water_latest.csv")


def test_settings_normalizes_cors_from_string():
    settings = Settings(cors_origins="http://example.com, http://localhost")
    assert settings.cors_origins == ["http://example.com", "http://localhost"]


def test_settings_handles_case_insensitive_env(monkeypatch):
    monkeypatch.setenv("socrata_cache_ttl", "60")
    monkeypatch.setenv("NEWS_FEEDS", '[{"url": "https://example.org/feed", "source": "Example"}]')
    settings = Settings()
    assert settings.socrata_cache_ttl == 60
    assert settings.news_feeds[0].source == "Example"
