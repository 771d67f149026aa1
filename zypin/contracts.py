"""Shared on-disk and wire contract identifiers for providers and supervision."""

CAPABILITY_START = "start"
CAPABILITY_RUN = "run"
CAPABILITY_HEALTH = "health"

SUPPORTED_CAPABILITIES = (
    CAPABILITY_START,
    CAPABILITY_RUN,
    CAPABILITY_HEALTH,
)

PROVIDER_ENTRY_POINT = "provider.py"
TEMPLATES_DIR = "templates"
TEMPLATE_DESCRIPTOR = "template.json"
TEMPLATE_RUNNER = "runner.py"
NAMESPACE_SEPARATOR = "/"
SCOPE_PREFIX = "@"

DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8421
HEALTH_ENDPOINT = "/api/health"
