from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "app.yaml"

_TRUE = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppConfig:
    raw: Dict[str, Any]

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.raw.get(name, {}) if isinstance(self.raw, dict) else {}
        return section if isinstance(section, dict) else {}

    def server_host(self) -> str:
        return os.getenv("HOST") or str(self._section("server").get("host", "0.0.0.0"))

    def server_port(self) -> int:
        return int(os.getenv("PORT") or self._section("server").get("port", 3000))

    def events_file(self) -> Path:
        return Path(
            os.getenv("EVENTS_FILE")
            or self._section("storage").get("events_file", "data/events.json")
        )

    def database_url(self) -> str:
        return os.getenv("DATABASE_URL") or str(
            self._section("storage").get("database_url", "sqlite:///./data/users.db")
        )

    def scheduler_enabled(self) -> bool:
        env = os.getenv("SCHEDULER_ENABLED")
        if env is not None:
            return env.strip().lower() in _TRUE
        return bool(self._section("scheduler").get("enabled", True))

    def scheduler_interval_seconds(self) -> int:
        # env -> scheduler.interval_seconds -> 60, never below 1
        raw = os.getenv("REMINDER_SWEEP_SECONDS") or self._section("scheduler").get(
            "interval_seconds", 60
        )
        return max(1, int(raw))

    def jwt_secret(self) -> str:
        return os.getenv("JWT_SECRET") or str(
            self._section("auth").get("jwt_secret", "my_jwt_secret")
        )

    def token_ttl_minutes(self) -> int:
        return int(
            os.getenv("TOKEN_TTL_MINUTES")
            or self._section("auth").get("token_ttl_minutes", 60)
        )

    def seed_users(self) -> List[Dict[str, str]]:
        users = self._section("auth").get("seed_users") or []
        return [
            {"username": str(u["username"]), "password": str(u["password"])}
            for u in users
            if isinstance(u, dict) and u.get("username") and u.get("password")
        ]


_cached: Optional[AppConfig] = None


def load_app_config(path: Path | None = None) -> AppConfig:
    global _cached
    if _cached is not None and path is None:
        return _cached

    p = path or DEFAULT_CONFIG_PATH
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    cfg = AppConfig(raw=data)
    if path is None:
        _cached = cfg
    return cfg
