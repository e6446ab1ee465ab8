"""Prometheus metrics for the DBaaS Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "dbaas_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "dbaas_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "dbaas_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

# State machine metrics
state_transitions_total = Counter(
    "dbaas_operator_state_transitions_total",
    "Total number of lifecycle state transitions",
    ["kind", "from_state", "to_state"],
)

reapply_total = Counter(
    "dbaas_operator_reapply_total",
    "Total number of reapply requeues scheduled",
    ["kind"],
)

# Patch metrics
patch_total = Counter(
    "dbaas_operator_patch_total",
    "Total number of patches issued against managed resources",
    ["kind", "target", "result"],
)

# API call metrics
api_call_total = Counter(
    "dbaas_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "dbaas_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
