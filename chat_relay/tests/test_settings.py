from chat_relay.config.settings import Settings


def _clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in (
        "BOT_TOKEN",
        "TELEGRAM_BOT_TOKEN",
        "GEMINI_API_KEY",
        "RENDER_EXTERNAL_URL",
        "WEBHOOK_URL",
        "WEBHOOK_PATH",
        "PORT",
        "MAX_HISTORY_LENGTH",
        "MAX_RETRIES",
        "RELAY_CONFIG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch, tmp_path):
    _clean_env(monkeypatch, tmp_path)
    s = Settings(_env_file=None)
    assert s.gemini_api_key is None
    assert s.gemini_model == "gemini-1.5-flash-latest"
    assert s.max_history_length == 10
    assert s.max_retries == 3
    assert s.retry_backoff_base == 2.0
    assert s.webhook_path == "/bot-updates"
    assert s.port == 3000


def test_env_aliases(monkeypatch, tmp_path):
    _clean_env(monkeypatch, tmp_path)
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv("RENDER_EXTERNAL_URL", "https://relay.example.com")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("GEMINI_API_KEY", "   ")
    monkeypatch.setenv("WEBHOOK_PATH", "hook")

    s = Settings(_env_file=None)

    assert s.telegram_bot_token == "123:abc"
    assert s.webhook_url == "https://relay.example.com"
    assert s.port == 8080
    assert s.gemini_api_key is None
    assert s.webhook_path == "/hook"


def test_yaml_config_file(monkeypatch, tmp_path):
    _clean_env(monkeypatch, tmp_path)
    cfg = tmp_path / "relay.yaml"
    cfg.write_text("max_history_length: 6\nlocale: en\n", encoding="utf-8")
    monkeypatch.setenv("RELAY_CONFIG_FILE", str(cfg))

    s = Settings(_env_file=None)

    assert s.max_history_length == 6
    assert s.locale == "en"


def test_env_overrides_yaml(monkeypatch, tmp_path):
    _clean_env(monkeypatch, tmp_path)
    cfg = tmp_path / "relay.yaml"
    cfg.write_text("max_retries: 5\n", encoding="utf-8")
    monkeypatch.setenv("RELAY_CONFIG_FILE", str(cfg))
    monkeypatch.setenv("MAX_RETRIES", "2")

    assert Settings(_env_file=None).max_retries == 2
