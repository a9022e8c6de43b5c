import pytest

from Finance.API.app import FinanceApp
from Finance.API.settings import Settings, load_settings
from Finance.Adapters.Outbound.mongodb_adapter import MongoDBAdapter
from Finance.Domain.errors import ConfigurationError

ENV_VARS = [
    "MONGODB_CONNECTION_STRING", "MONGODB_DATABASE", "KEYLIST_PATH", "ALPHAVANTAGE_BASE_URL",
    "ALPHAVANTAGE_PACE_SECONDS", "ALPHAVANTAGE_TIMEOUT", "NEWS_PULL_LIMIT", "PRICE_QUERY_LIMIT", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings(load_env_file=False)
    assert settings == Settings()
    assert settings.mongodb_database == "finance"
    assert settings.pace_seconds == 5.0
    assert settings.mongodb_connection_string is None


def test_reads_environment(clean_env):
    clean_env.setenv("MONGODB_CONNECTION_STRING", "localhost:27017")
    clean_env.setenv("KEYLIST_PATH", "/etc/finance/keys")
    clean_env.setenv("ALPHAVANTAGE_PACE_SECONDS", "0.5")
    clean_env.setenv("NEWS_PULL_LIMIT", "50")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = load_settings(load_env_file=False)

    assert settings.mongodb_connection_string == "localhost:27017"
    assert settings.keylist_path == "/etc/finance/keys"
    assert settings.pace_seconds == 0.5
    assert settings.news_pull_limit == 50
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("name,value", [("ALPHAVANTAGE_PACE_SECONDS", "soon"), ("NEWS_PULL_LIMIT", "-1")])
def test_bad_numbers_are_configuration_errors(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ConfigurationError, match=name):
        load_settings(load_env_file=False)


def test_app_is_wired_from_settings():
    app = FinanceApp.from_settings(Settings(
        mongodb_connection_string="db:27017", mongodb_database="finance_test", pace_seconds=0,
    ))

    assert isinstance(app.store, MongoDBAdapter)
    assert app.store.database == "finance_test"
    assert app.limiter.interval == 0
    assert app.market_fetcher.keys is app.news_fetcher.keys is app.keys
    assert app.query_service.market_fetcher is app.market_fetcher
