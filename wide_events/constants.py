# Well-known event field names
FIELD_TIMESTAMP = "timestamp"
FIELD_SERVICE = "service"
FIELD_VERSION = "version"
FIELD_DEPLOYMENT_ID = "deployment_id"
FIELD_REGION = "region"
FIELD_ENVIRONMENT = "environment"

FIELD_REQUEST_ID = "request_id"
FIELD_METHOD = "method"
FIELD_PATH = "path"
FIELD_QUERY_STRING = "query_string"
FIELD_IP = "ip"
FIELD_USER_AGENT = "user_agent"
FIELD_REFERER = "referer"

FIELD_USER = "user"
FIELD_ERROR = "error"
FIELD_OUTCOME = "outcome"
FIELD_STATUS_CODE = "status_code"
FIELD_DURATION_MS = "duration_ms"
FIELD_TRACE_ID = "trace_id"
FIELD_SPAN_ID = "span_id"

# Nested user fields
USER_ID = "id"
USER_EMAIL = "email"
USER_SUBSCRIPTION = "subscription"
USER_ACCOUNT_AGE_DAYS = "account_age_days"
USER_LIFETIME_VALUE_CENTS = "lifetime_value_cents"

# Nested error fields
ERROR_TYPE = "type"
ERROR_MESSAGE = "message"
ERROR_CODE = "code"
ERROR_RETRIABLE = "retriable"
ERROR_BACKTRACE = "backtrace"
ERROR_BACKTRACE_LIMIT = 5

# Outcomes
OUTCOME_SUCCESS = "success"
OUTCOME_ERROR = "error"

# Status code that marks a response as failed
ERROR_STATUS_THRESHOLD = 400
# Status code recorded when the application raised
STATUS_CODE_EXCEPTION = 500

# Sampling rule names, in evaluation order
RULE_DISABLED = "disabled"
RULE_ERROR = "error"
RULE_SLOW_REQUEST = "slow_request"
RULE_USER = "user"
RULE_PATH = "path"
RULE_SAMPLE_RATE = "sample_rate"

# Emission reasons
EMIT_SAMPLED = "sampled"
EMIT_ERROR = "error"

# Request state / app state attribute names
STATE_WIDE_EVENT = "wide_event"
STATE_COORDINATOR = "wide_events"

# Prometheus metric names and descriptions
PROMETHEUS_DECISIONS = "wide_events_sampling_decisions_total"
PROMETHEUS_DECISIONS_DESC = "Tail sampling decisions by matched rule"
PROMETHEUS_EMITTED = "wide_events_emitted_total"
PROMETHEUS_EMITTED_DESC = "Wide events handed to the sink"
PROMETHEUS_SINK_ERRORS = "wide_events_sink_errors_total"
PROMETHEUS_SINK_ERRORS_DESC = "Sink writes that raised"

# Log message templates
LOG_MSG_SINK_FAILED = "[wide_events] sink write failed for request {}"
LOG_MSG_RECONFIGURED = "[wide_events] sampling policy replaced: {}"
