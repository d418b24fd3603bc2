"""
Alert Rule Generator for Prometheus AlertManager

Generates alert rule definitions for scheduled log reconciliation runs.
Rules cover log divergence, failing runs and stale reconciliation.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union
import yaml

logger = logging.getLogger(__name__)


class AlertRuleGenerator:
    """Generates Prometheus AlertManager alert rules."""

    def __init__(self, namespace: str = "logrecon", stale_after_hours: int = 24):
        """
        Args:
            namespace: Metric name prefix used by ReconciliationMetrics
            stale_after_hours: Hours without a clean run before alerting
        """
        self.namespace = namespace
        self.stale_after_hours = stale_after_hours

    def generate_alert_rules(self) -> Dict[str, Any]:
        """
        Generate complete alert rule configuration.

        Returns:
            Dict with alert rule groups in Prometheus format
        """
        groups = [
            self._generate_divergence_alerts(),
            self._generate_run_health_alerts(),
        ]

        logger.info(f"Generated {len(groups)} alert rule groups")
        return {"groups": groups}

    def _generate_divergence_alerts(self) -> Dict[str, Any]:
        """Generate alerts on mismatching windows."""
        ns = self.namespace
        return {
            "name": f"{ns}_divergence",
            "interval": "1m",
            "rules": [
                {
                    "alert": "ChainLogsDiverged",
                    "expr": f"{ns}_last_run_mismatched_windows > 0",
                    "for": "0m",
                    "labels": {
                        "severity": "critical",
                        "component": "reconciliation"
                    },
                    "annotations": {
                        "summary": "Event logs differ between chains",
                        "description": "The last reconciliation run found {{ $value }} mismatching block ranges"
                    }
                },
                {
                    "alert": "ChainLogCountSkew",
                    "expr": (
                        f"abs(increase({ns}_logs_fetched_total{{source=\"chain_1\"}}[1h]) "
                        f"- ignoring(source) increase({ns}_logs_fetched_total{{source=\"chain_2\"}}[1h])) > 0"
                    ),
                    "for": "10m",
                    "labels": {
                        "severity": "warning",
                        "component": "reconciliation"
                    },
                    "annotations": {
                        "summary": "Chains returned different log volumes",
                        "description": "Log counts fetched from the two chains differ by {{ $value }} over the last hour"
                    }
                }
            ]
        }

    def _generate_run_health_alerts(self) -> Dict[str, Any]:
        """Generate alerts on failing or missing runs."""
        ns = self.namespace
        stale_seconds = self.stale_after_hours * 3600
        return {
            "name": f"{ns}_runs",
            "interval": "5m",
            "rules": [
                {
                    "alert": "ReconciliationRunFailing",
                    "expr": f"increase({ns}_runs_total{{status=~\"failure|timeout\"}}[1h]) > 0",
                    "for": "5m",
                    "labels": {
                        "severity": "warning",
                        "component": "reconciliation"
                    },
                    "annotations": {
                        "summary": "Reconciliation runs are aborting",
                        "description": "Runs with status {{ $labels.status }} in the last hour: {{ $value }}"
                    }
                },
                {
                    "alert": "ReconciliationStale",
                    "expr": f"time() - {ns}_last_success_timestamp_seconds > {stale_seconds}",
                    "for": "15m",
                    "labels": {
                        "severity": "warning",
                        "component": "reconciliation"
                    },
                    "annotations": {
                        "summary": "No clean reconciliation run recently",
                        "description": f"No run without mismatches in the last {self.stale_after_hours}h"
                    }
                }
            ]
        }

    def to_yaml(self) -> str:
        """Render the rules as Prometheus rule-file YAML."""
        return yaml.safe_dump(self.generate_alert_rules(), sort_keys=False)

    def write_rules(self, path: Union[str, Path]) -> Path:
        """
        Write the rule file.

        Args:
            path: Destination file

        Returns:
            Path written
        """
        path = Path(path)
        path.write_text(self.to_yaml())
        logger.info(f"Alert rules written to {path}")
        return path
