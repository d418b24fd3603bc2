"""
Monitoring Module for Chain Log Reconciliation

This module provides observability components for reconciliation runs:
- Prometheus metrics for runs, window verdicts and fetched logs
- Alert rule definitions

Usage:
    from logrecon.monitoring import ReconciliationMetrics, AlertRuleGenerator

    metrics = ReconciliationMetrics()
    reconciler = LogReconciler(chain_1, chain_2, metrics=metrics)

    rules_yaml = AlertRuleGenerator().to_yaml()
"""

from logrecon.monitoring.metrics import ReconciliationMetrics
from logrecon.monitoring.alerts import AlertRuleGenerator

__all__ = [
    "ReconciliationMetrics",
    "AlertRuleGenerator",
]

__version__ = "1.0.0"
