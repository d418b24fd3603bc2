"""
Unit tests for alert rule generation.
"""

import pytest
import yaml

from logrecon.monitoring.alerts import AlertRuleGenerator


class TestAlertRuleGenerator:
    """Test Prometheus rule output."""

    @pytest.fixture
    def generator(self):
        return AlertRuleGenerator()

    def test_rule_groups(self, generator):
        rules = generator.generate_alert_rules()

        assert [g["name"] for g in rules["groups"]] == ["logrecon_divergence", "logrecon_runs"]

    def test_alert_names(self, generator):
        rules = generator.generate_alert_rules()
        names = {r["alert"] for g in rules["groups"] for r in g["rules"]}

        assert names == {
            "ChainLogsDiverged",
            "ChainLogCountSkew",
            "ReconciliationRunFailing",
            "ReconciliationStale",
        }

    def test_rules_reference_exported_metrics(self, generator):
        """Test that every expression uses a metric the reconciler exports."""
        rules = generator.generate_alert_rules()
        exprs = [r["expr"] for g in rules["groups"] for r in g["rules"]]

        assert any("logrecon_last_run_mismatched_windows" in e for e in exprs)
        assert any("logrecon_runs_total" in e for e in exprs)
        assert any("logrecon_last_success_timestamp_seconds" in e for e in exprs)

    def test_stale_threshold(self):
        rules = AlertRuleGenerator(stale_after_hours=2).generate_alert_rules()
        stale = next(r for g in rules["groups"] for r in g["rules"] if r["alert"] == "ReconciliationStale")

        assert stale["expr"].endswith("> 7200")

    def test_yaml_round_trip(self, generator):
        assert yaml.safe_load(generator.to_yaml()) == generator.generate_alert_rules()

    def test_write_rules(self, generator, tmp_path):
        path = generator.write_rules(tmp_path / "alerts.yml")

        assert path.exists()
        assert yaml.safe_load(path.read_text())["groups"]
