"""Frame timing constants and configuration defaults."""

# Reserved SurfaceFlinger timestamp for "pending / invalid" frames (Long.MAX_VALUE)
INT64_MAX = 2**63 - 1

# Unit conversion
NS_PER_MS = 1_000_000
NS_PER_SECOND = 1_000_000_000

# Diagnostic command issued every poll; the layer name is quoted
LATENCY_COMMAND = 'dumpsys SurfaceFlinger --latency "{layer}"'

# Sentinel written to the metric map when the load time is unknown
LOAD_TIME_UNKNOWN = -1

# Percentile thresholds, as fractions of the largest frame times
ONE_PERCENT = 0.01
FIVE_PERCENT = 0.05
TEN_PERCENT = 0.10

# Metric map keys
LOOP_COUNT_KEY = "loop_count"
JANK_RATE_KEY = "jank_rate"
LOAD_TIME_KEY = "load_time"

# Frame timeline CSV header
FRAME_CSV_HEADER = [
    "index",
    "present_time_ns",
    "ready_time_ns",
    "present_delta_ns",
    "ready_delta_ns",
]

# Polling defaults
DEFAULT_INTERVAL_S = 1.0
DEFAULT_COMMAND_TIMEOUT_S = 10.0
DEFAULT_HISTOGRAM_BUCKET_MS = 1.0
DEFAULT_HISTOGRAM_MAX_BAR = 60
