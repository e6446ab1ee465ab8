"""Constants for the DBaaS Operator."""

# API Group
API_GROUP = "dbaas.cloud37.dev"

# Annotations
ANNOTATION_STATE_TRACKER = f"{API_GROUP}/state-tracker"
ANNOTATION_REAPPLY_TIMESTAMP = f"{API_GROUP}/reapply-timestamp"
ANNOTATION_REAPPLY_PERIOD = f"{API_GROUP}/reapply-period"
ANNOTATION_EXTERNAL_PREFIX = f"{API_GROUP}/external-"
ANNOTATION_RECONCILIATION_POLICY = f"{API_GROUP}/reconciliation-policy"
ANNOTATION_RESOURCE_POLICY = f"{API_GROUP}/resource-policy"
ANNOTATION_DEPENDENCY_CHANGED = f"{API_GROUP}/dependency-changed"

RECONCILIATION_POLICY_SKIP = "skip"
RESOURCE_POLICY_KEEP = "keep"
RESOURCE_POLICY_DELETE = "delete"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Field Manager
FIELD_MANAGER = "dbaas-operator"

# Controller name used in structured logs
CONTROLLER_NAME = "dbaas-operator"

# Condition Types
COND_STATE = "State"
COND_READY = "Ready"

# Ready condition reasons
READY_REASON_ERROR = "Error"
READY_REASON_PENDING = "Pending"
READY_REASON_SETTLED = "Settled"

# Minimum accepted reapply period, in seconds
MIN_REAPPLY_PERIOD_SECONDS = 60.0

# Dependency kinds that take part in the state tracker fingerprint
TRACKED_DEPENDENCY_KINDS = frozenset({"Secret", "ConfigMap"})

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_STATE_CHANGED = "StateChanged"
EVENT_REASON_RECONCILE_SKIPPED = "ReconcileSkipped"
EVENT_REASON_FINALIZER_REMOVED = "FinalizerRemoved"
