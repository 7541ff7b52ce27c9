"""Environment-driven configuration loading."""
import pytest

from healing.config import load_config
from healing.engine import SelfHealingEngine
from healing.errors import InvalidConfigError
from healing.types import BackoffStrategyKind, ChallengeHandling


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("HEALING_MAX_RETRIES", "HEALING_BASE_BACKOFF_MS", "HEALING_MAX_BACKOFF_MS",
                 "HEALING_BACKOFF_MULTIPLIER", "HEALING_RESOURCE_FAILOVER", "HEALING_UNIT_RESTART",
                 "HEALING_CHALLENGE_HANDLING", "HEALING_BACKOFF_STRATEGY", "HEALING_HISTORY_CAPACITY"):
        # setenv then delenv so monkeypatch restores "unset" even if a .env file sets it
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestLoadConfig:

    def test_defaults_without_env(self, clean_env, tmp_path):
        config = load_config(str(tmp_path / "missing.env"))
        assert config.max_retries == 3
        assert config.backoff_strategy_kind == BackoffStrategyKind.EXPONENTIAL

    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("HEALING_MAX_RETRIES", "7")
        clean_env.setenv("HEALING_RESOURCE_FAILOVER", "false")
        clean_env.setenv("HEALING_CHALLENGE_HANDLING", "PAUSE")
        clean_env.setenv("HEALING_BACKOFF_STRATEGY", "fibonacci")
        clean_env.setenv("HEALING_BACKOFF_MULTIPLIER", "1.5")

        config = load_config(str(tmp_path / "missing.env"))

        assert config.max_retries == 7
        assert config.resource_failover_enabled is False
        assert config.challenge_handling == ChallengeHandling.PAUSE
        assert config.backoff_strategy_kind == BackoffStrategyKind.FIBONACCI
        assert config.backoff_multiplier == 1.5

    def test_reads_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("HEALING_MAX_BACKOFF_MS=9000\nHEALING_UNIT_RESTART=0\n")

        config = load_config(str(env_file))

        assert config.max_backoff_ms == 9000
        assert config.unit_restart_enabled is False

    def test_overrides_win(self, clean_env, tmp_path):
        clean_env.setenv("HEALING_MAX_RETRIES", "7")
        config = load_config(str(tmp_path / "missing.env"), max_retries=1)
        assert config.max_retries == 1

    def test_unknown_strategy_falls_back(self, clean_env, tmp_path):
        clean_env.setenv("HEALING_BACKOFF_STRATEGY", "quadratic")
        config = load_config(str(tmp_path / "missing.env"))
        assert config.backoff_strategy_kind == BackoffStrategyKind.EXPONENTIAL

    def test_invalid_value_raises(self, clean_env, tmp_path):
        clean_env.setenv("HEALING_MAX_RETRIES", "many")
        with pytest.raises(InvalidConfigError):
            load_config(str(tmp_path / "missing.env"))

    def test_invalid_challenge_mode_raises(self, clean_env, tmp_path):
        clean_env.setenv("HEALING_CHALLENGE_HANDLING", "solve")
        with pytest.raises(InvalidConfigError):
            load_config(str(tmp_path / "missing.env"))

    def test_engine_from_env(self, clean_env, tmp_path):
        clean_env.setenv("HEALING_BACKOFF_STRATEGY", "linear")
        eng = SelfHealingEngine.from_env(str(tmp_path / "missing.env"), max_retries=2)
        assert eng.get_active_strategy_name() == "linear"
        assert eng.get_config().max_retries == 2
