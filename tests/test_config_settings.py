import pytest
from pydantic import ValidationError

from trustbridge.config import Settings


def test_defaults_match_deployed_bot(monkeypatch):
    """Defaults describe the USDT/ADA -> IDR deployment."""
    for name in ("SUPPORTED_FIAT", "WALLET_TOKENS", "RECIPIENT_CURRENCIES", "INVERSE_QUOTE_PAIRS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.rate_cache_ttl_seconds == 300
    assert settings.fee_percentage == 0.015
    assert settings.max_poll_count == 120
    assert settings.wallet_tokens == ["USDT", "ADA"]
    assert settings.recipient_currencies == ["IDR"]
    assert "USD" in settings.supported_fiat and "IDR" in settings.supported_fiat
    assert ("USDT", "IDR") in settings.inverse_quote_pairs


def test_comma_separated_codes_from_env(monkeypatch):
    """List settings accept comma separated env values and upper-case them."""
    monkeypatch.setenv("WALLET_TOKENS", "usdt, ada ,btc")
    monkeypatch.setenv("INVERSE_QUOTE_PAIRS", "usdt:idr,btc:idr")

    settings = Settings(_env_file=None)

    assert settings.wallet_tokens == ["USDT", "ADA", "BTC"]
    assert settings.inverse_quote_pairs == [("USDT", "IDR"), ("BTC", "IDR")]


def test_malformed_quote_pair_rejected(monkeypatch):
    monkeypatch.setenv("INVERSE_QUOTE_PAIRS", "USDT-IDR")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize("field", ["max_poll_count", "poll_interval_seconds"])
def test_poll_bounds_below_one_rejected(field):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


def test_fallback_rate_table_keys_by_pair():
    settings = Settings(_env_file=None, static_fallback_rates={"usdt:idr": 16000, "bad": 1})

    assert settings.fallback_rate_table() == {("USDT", "IDR"): 16000.0}


def test_environment_flags():
    assert Settings(_env_file=None, environment="production").is_production is True
    assert Settings(_env_file=None, environment="development").is_production is False
    assert Settings(_env_file=None, cmc_api_key="k").has_cmc_key is True
    assert Settings(_env_file=None, freecurrency_api_key="").has_freecurrency_key is False
