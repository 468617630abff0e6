"""Tests for cpumetrics configuration."""

import pytest

from cpumetrics.config import CollectionStrategy, MetricOpts, Settings


class TestMetricOpts:
    """Tests for the output switches."""

    def test_defaults(self):
        """Test percentages are on by default."""
        opts = MetricOpts()
        assert opts.percentages
        assert not opts.ticks
        assert not opts.normalized_percentages
        assert opts.precision == 2

    def test_from_mapping_camel_case(self):
        """Test the external option names are accepted."""
        options = {"ticks": True, "percentages": True, "normalizedPercentages": True}
        opts = MetricOpts.from_mapping(options)
        assert opts == MetricOpts(ticks=True, percentages=True, normalized_percentages=True)

    def test_from_mapping_snake_case(self):
        """Test Python style option names are accepted."""
        opts = MetricOpts.from_mapping({"normalized_percentages": True, "precision": 4})
        assert opts == MetricOpts(normalized_percentages=True, precision=4)

    def test_from_mapping_ignores_unknown_keys(self):
        """Test unrelated keys do not break option parsing."""
        opts = MetricOpts.from_mapping({"use_performance_counter": True})
        assert opts == MetricOpts()

    def test_from_mapping_missing_keys_keep_defaults(self):
        """Test an empty mapping gives the same options as the constructor."""
        assert MetricOpts.from_mapping({}) == MetricOpts()
        assert MetricOpts.from_mapping({}).percentages

    def test_from_mapping_can_turn_percentages_off(self):
        """Test an explicit false switch is honoured."""
        opts = MetricOpts.from_mapping({"percentages": False, "ticks": True})
        assert opts == MetricOpts(ticks=True, percentages=False)

    def test_opts_are_frozen(self):
        """Test options cannot be changed after creation."""
        opts = MetricOpts()
        with pytest.raises(AttributeError):
            opts.ticks = True


class TestSettings:
    """Tests for environment driven settings."""

    def test_defaults(self, monkeypatch):
        """Test settings have sensible defaults."""
        monkeypatch.delenv("CPUMETRICS_POLL_RATE", raising=False)
        settings = Settings(_env_file=None)
        assert settings.poll_rate == 2.0
        assert settings.strategy is CollectionStrategy.AUTO
        assert settings.per_core
        assert settings.proc_root == "/proc"

    def test_from_environment(self, monkeypatch):
        """Test CPUMETRICS_ variables override the defaults."""
        monkeypatch.setenv("CPUMETRICS_POLL_RATE", "0.5")
        monkeypatch.setenv("CPUMETRICS_STRATEGY", "procfs")
        monkeypatch.setenv("CPUMETRICS_TICKS", "true")
        monkeypatch.setenv("CPUMETRICS_PER_CORE", "false")

        settings = Settings(_env_file=None)

        assert settings.poll_rate == 0.5
        assert settings.strategy is CollectionStrategy.PROCFS
        assert settings.ticks
        assert not settings.per_core

    def test_metric_opts(self):
        """Test output switches carry over to engine options."""
        settings = Settings(_env_file=None, ticks=True, percentages=False, precision=3)
        assert settings.metric_opts() == MetricOpts(
            ticks=True,
            percentages=False,
            normalized_percentages=True,
            precision=3,
        )
