from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError


DEFAULT_PAGE_URL = "https://appointmenttrader.com/concierge"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _default_env_paths() -> list[Path]:
    """Search order for config.env.

    An explicit CONCIERGEWATCH_CONFIG wins; otherwise a repo-local
    data/config.env, then the per-user one.
    """
    p = (os.getenv("CONCIERGEWATCH_CONFIG") or "").strip()
    if p:
        return [Path(p)]
    return [
        Path.cwd() / "data" / "config.env",
        Path.home() / ".conciergewatch" / "config.env",
    ]


def find_config_env() -> Optional[Path]:
    for p in _default_env_paths():
        if p.exists():
            return p
    return None


@dataclass(frozen=True)
class AppConfig:
    webhook_url: str
    page_url: str = DEFAULT_PAGE_URL
    # Directory holding state.<version>.json
    state_dir: Path = Path(".")

    first_run: bool = True
    seed_if_empty: bool = True
    debug: bool = False

    max_items: int = 20
    ttl_days: int = 14
    # Pause between webhook posts; Discord rate-limits bursts.
    delay_ms: int = 750
    hydration_wait_ms: int = 2500
    nav_timeout_ms: int = 60_000
    http_timeout_s: int = 15


def _load_envfile(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        os.environ.setdefault(k.strip(), v.strip())


def _getb(name: str, default: bool) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    return default


def _geti(name: str, default: int) -> int:
    v = (os.getenv(name) or "").strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def load_config(env_path: Optional[Path] = None, *, require_webhook: bool = True) -> AppConfig:
    env_path = env_path or find_config_env()
    if env_path is not None:
        _load_envfile(env_path)

    webhook = (os.getenv("DISCORD_WEBHOOK_URL") or "").strip()
    if not webhook and require_webhook:
        raise ConfigError("Missing DISCORD_WEBHOOK_URL env var.")

    return AppConfig(
        webhook_url=webhook,
        page_url=(os.getenv("PAGE_URL") or DEFAULT_PAGE_URL).strip(),
        state_dir=Path((os.getenv("STATE_DIR") or ".").strip()),
        first_run=_getb("FIRST_RUN", AppConfig.first_run),
        seed_if_empty=_getb("SEED_IF_EMPTY", AppConfig.seed_if_empty),
        debug=_getb("DEBUG_LOG", AppConfig.debug),
        max_items=_geti("MAX_ITEMS", AppConfig.max_items),
        ttl_days=_geti("STATE_TTL_DAYS", AppConfig.ttl_days),
        delay_ms=_geti("DISCORD_DELAY_MS", AppConfig.delay_ms),
        hydration_wait_ms=_geti("HYDRATION_WAIT_MS", AppConfig.hydration_wait_ms),
        nav_timeout_ms=_geti("NAV_TIMEOUT_MS", AppConfig.nav_timeout_ms),
        http_timeout_s=_geti("HTTP_TIMEOUT_S", AppConfig.http_timeout_s),
    )
