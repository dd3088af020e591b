import logging
from pathlib import Path
from dataclasses import dataclass, fields
import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]

logger = logging.getLogger(__name__)

NGINX_DEFAULT_PAGE_MARKER = (
    "<p>If you see this page, the nginx web server is successfully installed and\n"
    "working. Further configuration is required.</p>"
)


@dataclass(frozen=True)
class ProbeConfig:
    """
    Process-wide probing and caching settings.

    Values can be overridden via statusboard_config.yaml at the project root.
    Every probe of a round shares the same config; it is never mutated.
    """

    # Prober
    request_timeout_ms: int = 2000
    user_agent: str = "statusboard/0.1"
    min_tls_version: str = "1.2"
    landing_page_marker: str = NGINX_DEFAULT_PAGE_MARKER

    # Coordinator
    round_attempts: int = 2
    retry_backoff_s: float = 1.0

    # Result cache
    fresh_window_s: int = 60
    max_stale_s: int = 60 * 60

    # Static data and exports
    roster_path: str = "data/roster.yaml"
    results_dir: str = "results"

    @property
    def request_timeout_s(self) -> float:
        return self.request_timeout_ms / 1000


def resolve_path(path: str | Path) -> Path:
    """
    Resolve a config path relative to the project root unless it is absolute.
    """
    p = Path(path)
    if not p.is_absolute():
        p = PROJECT_ROOT / p
    return p


def load_probe_config(path: str | Path | None = None) -> ProbeConfig:
    """
    Load ProbeConfig from YAML if present; otherwise use defaults.

    By default, looks for `statusboard_config.yaml` at the project root.
    """

    if path is None:
        path = PROJECT_ROOT / "statusboard_config.yaml"

    path = Path(path)

    if not path.exists():
        logger.info("[config] YAML not found at %s, using defaults", path)
        return ProbeConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        logger.warning("[config] Expected mapping in %s, got %s, using defaults", path, type(data))
        return ProbeConfig()

    allowed_keys = {f.name for f in fields(ProbeConfig)}
    unknown = sorted(set(data) - allowed_keys)
    if unknown:
        logger.warning("[config] Ignoring unknown keys in %s: %s", path, ", ".join(map(str, unknown)))
    filtered = {k: v for k, v in data.items() if k in allowed_keys}

    return ProbeConfig(**filtered)
