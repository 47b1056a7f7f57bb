"""Tests for configuration and environment variable helpers."""

import pytest

from src.helpers.config import (
    ChainSettings,
    CollectorSettings,
    get_float_env,
    get_int_env,
    get_optional_env,
    get_required_env,
    load_chain_settings,
    load_collector_settings,
)


CONTRACT = "0xbD6C7B0d2f68c2b7805d88388319cfB6EcB50eA9"

ENV_KEYS = (
    "TEST_KEY",
    "ACTIVE_CHAIN",
    "RPC_URL",
    "CONTRACT_ADDRESS",
    "START_POINT",
    "BATCH_SIZE",
    "JOB_LEASE_TTL_SECONDS",
    "HISTORICAL_POLL_INTERVAL_SECONDS",
    "REALTIME_POLL_INTERVAL_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every variable the loaders read."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def chain_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """A complete, valid chain configuration."""
    clean_env.setenv("ACTIVE_CHAIN", "137")
    clean_env.setenv("RPC_URL", "https://polygon.test.rpc")
    clean_env.setenv("CONTRACT_ADDRESS", CONTRACT)
    clean_env.setenv("START_POINT", "78600000")
    return clean_env


class TestGetRequiredEnv:
    """Tests for get_required_env function."""

    def test_returns_env_value_when_set(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test that get_required_env returns value when set."""
        clean_env.setenv("TEST_KEY", "test_value")
        assert get_required_env("TEST_KEY") == "test_value"

    @pytest.mark.usefixtures("clean_env")
    def test_raises_when_not_set(self) -> None:
        """Test that get_required_env raises ValueError when not set."""
        with pytest.raises(
            ValueError, match="TEST_KEY environment variable is not set"
        ):
            get_required_env("TEST_KEY")

    def test_raises_when_empty_string(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test that get_required_env raises ValueError when empty."""
        clean_env.setenv("TEST_KEY", "")
        with pytest.raises(
            ValueError, match="TEST_KEY environment variable is not set"
        ):
            get_required_env("TEST_KEY")


@pytest.mark.usefixtures("clean_env")
class TestGetOptionalEnv:
    """Tests for get_optional_env function."""

    def test_returns_default_when_not_set(self) -> None:
        """Test that the default is returned for a missing variable."""
        assert get_optional_env("TEST_KEY", "fallback") == "fallback"

    def test_returns_none_without_default(self) -> None:
        """Test that None is returned when nothing is set."""
        assert get_optional_env("TEST_KEY") is None


class TestNumericEnv:
    """Tests for get_int_env and get_float_env."""

    def test_int_parsed(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test integer parsing."""
        clean_env.setenv("TEST_KEY", "42")
        assert get_int_env("TEST_KEY") == 42

    @pytest.mark.usefixtures("clean_env")
    def test_int_default(self) -> None:
        """Test that the default applies to a missing variable."""
        assert get_int_env("TEST_KEY", 7) == 7

    @pytest.mark.usefixtures("clean_env")
    def test_int_required_without_default(self) -> None:
        """Test that a missing variable without default raises."""
        with pytest.raises(ValueError, match="TEST_KEY environment variable"):
            get_int_env("TEST_KEY")

    def test_int_rejects_garbage(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test that non-integers raise a readable error."""
        clean_env.setenv("TEST_KEY", "ten")
        with pytest.raises(ValueError, match="TEST_KEY must be an integer"):
            get_int_env("TEST_KEY")

    def test_float_parsed(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test float parsing."""
        clean_env.setenv("TEST_KEY", "2.5")
        assert get_float_env("TEST_KEY", 1.0) == 2.5

    def test_float_rejects_garbage(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test that non-numbers raise a readable error."""
        clean_env.setenv("TEST_KEY", "soon")
        with pytest.raises(ValueError, match="TEST_KEY must be a number"):
            get_float_env("TEST_KEY", 1.0)


class TestLoadCollectorSettings:
    """Tests for load_collector_settings."""

    @pytest.mark.usefixtures("clean_env")
    def test_defaults(self) -> None:
        """Test the documented defaults."""
        settings = load_collector_settings()

        assert settings == CollectorSettings(
            batch_size=100,
            job_lease_ttl=120.0,
            historical_poll_interval=5.0,
            realtime_poll_interval=60.0,
        )

    def test_reads_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test that every tunable is read from the environment."""
        clean_env.setenv("BATCH_SIZE", "500")
        clean_env.setenv("JOB_LEASE_TTL_SECONDS", "30")
        clean_env.setenv("HISTORICAL_POLL_INTERVAL_SECONDS", "1")
        clean_env.setenv("REALTIME_POLL_INTERVAL_SECONDS", "15")

        settings = load_collector_settings()

        assert settings.batch_size == 500
        assert settings.job_lease_ttl == 30.0
        assert settings.historical_poll_interval == 1.0
        assert settings.realtime_poll_interval == 15.0

    def test_rejects_zero_batch_size(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test that a batch size of 0 is refused."""
        clean_env.setenv("BATCH_SIZE", "0")
        with pytest.raises(ValueError, match="Invalid collector settings"):
            load_collector_settings()


class TestLoadChainSettings:
    """Tests for load_chain_settings."""

    def test_valid_config(self, chain_env: pytest.MonkeyPatch) -> None:
        """Test loading a complete configuration."""
        assert load_chain_settings() == ChainSettings(
            chain_id=137,
            rpc_url="https://polygon.test.rpc",
            contract_address=CONTRACT,
            start_point=78600000,
        )

    def test_missing_rpc_url(self, chain_env: pytest.MonkeyPatch) -> None:
        """Test that RPC_URL is required."""
        chain_env.delenv("RPC_URL")
        with pytest.raises(ValueError, match="RPC_URL environment variable"):
            load_chain_settings()

    def test_missing_start_point(self, chain_env: pytest.MonkeyPatch) -> None:
        """Test that START_POINT is required."""
        chain_env.delenv("START_POINT")
        with pytest.raises(ValueError, match="START_POINT environment variable"):
            load_chain_settings()

    def test_invalid_contract_address(self, chain_env: pytest.MonkeyPatch) -> None:
        """Test that a malformed address is refused."""
        chain_env.setenv("CONTRACT_ADDRESS", "0x1234")
        with pytest.raises(ValueError, match="Invalid chain config for chain id 137"):
            load_chain_settings()

    def test_negative_start_point(self, chain_env: pytest.MonkeyPatch) -> None:
        """Test that a negative start point is refused."""
        chain_env.setenv("START_POINT", "-1")
        with pytest.raises(ValueError, match="Invalid chain config"):
            load_chain_settings()
