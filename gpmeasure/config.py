"""Constants and configuration for gpmeasure."""

# Measurement API
API_BASE_URL = "https://api.globalping.io"
MEASUREMENTS_PATH = "/v1/measurements"
PROBES_PATH = "/v1/probes"
LIMITS_PATH = "/v1/limits"
TOKENS_URL = "https://dash.globalping.io/tokens"

# User agent for HTTP requests
USER_AGENT = "gpmeasure/0.1.0"

# Per-request HTTP timeout (seconds)
DEFAULT_REQUEST_TIMEOUT = 30.0

# Measurement types, in the order reports list them
MEASUREMENT_TYPES = ("ping", "traceroute", "dns", "mtr", "http")

# Probe limit
DEFAULT_LIMIT = 3
MIN_LIMIT = 1
MAX_LIMIT = 500

# Packet count for ping / mtr
DEFAULT_PACKETS = 3
MIN_PACKETS = 1
MAX_PACKETS = 16

# Traceroute / mtr
DEFAULT_PATH_PORT = 80
PATH_PROTOCOLS = ("ICMP", "TCP", "UDP")
DEFAULT_PATH_PROTOCOL = "ICMP"

# DNS
DNS_QUERY_TYPES = ("A", "AAAA", "ANY", "CNAME", "DNSKEY", "DS", "HTTPS", "MX",
                   "NS", "NSEC", "PTR", "RRSIG", "SOA", "TXT", "SRV", "SVCB")
DEFAULT_DNS_QUERY_TYPE = "A"
DNS_PROTOCOLS = ("UDP", "TCP")
DEFAULT_DNS_PROTOCOL = "UDP"
DEFAULT_DNS_PORT = 53

# HTTP
HTTP_METHODS = ("HEAD", "GET", "OPTIONS")
DEFAULT_HTTP_METHOD = "HEAD"
HTTP_PROTOCOLS = ("HTTP", "HTTPS", "HTTP2")
DEFAULT_HTTP_PROTOCOL = "HTTPS"
DEFAULT_HTTPS_PORT = 443
DEFAULT_HTTP_PORT = 80

IP_VERSIONS = (4, 6)

# Submission retry policy
MAX_SUBMIT_ATTEMPTS = 3
BACKOFF_BASE_MS = 1000

# Polling policy (milliseconds unless noted)
DEFAULT_POLL_TIMEOUT_MS = 60000
DEFAULT_POLL_INTERVAL_MS = 2000
MAX_POLL_INTERVAL_MS = 5000
MIN_POLL_INTERVAL_MS = 500
POLL_BACKOFF_FACTOR = 1.5
MAX_CONSECUTIVE_POLL_ERRORS = 3
ACCELERATE_REMAINING_FRACTION = 0.2

# Headers shown in HTTP reports, in display order
HTTP_HEADER_ALLOWLIST = [
    "content-type",
    "content-length",
    "server",
    "date",
    "cache-control",
    "x-powered-by",
    "strict-transport-security",
]

# Legacy structured location fields, joined with "+" into a magic string
LOCATION_FIELDS = ["continent", "region", "country", "state", "city", "asn", "network", "tags"]

# Terminal display labels
TYPE_LABELS = {
    "ping": "Ping",
    "traceroute": "Traceroute",
    "dns": "DNS",
    "mtr": "MTR",
    "http": "HTTP",
}
