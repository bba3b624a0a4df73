from typing import Any, Dict, List
import yaml
import os
from dotenv import load_dotenv


DEFAULT_MALICIOUS_PORTS = [4444, 5555, 6666, 31337, 12345, 1337]
DEFAULT_WATCHLIST_COUNTRIES = ["CN", "RU"]
DEFAULT_SAFE_PROCESSES = [
    "chrome", "firefox", "msedge", "steam", "spotify",
    "discord", "teams", "slack", "zoom"
]


class Config:
    """
    Loads configuration from environment variables (Priority 1) and 'config.yaml' (Priority 2).
    Looks for a .env file at the project root first, then in the working directory.
    """
    def __init__(self, config_path: str = "config.yaml") -> None:
        current_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.abspath(os.path.join(current_dir, '..', '..'))
        env_path = os.path.join(project_root, '.env')

        if os.path.exists(env_path):
            load_dotenv(dotenv_path=env_path, override=True)
        else:
            load_dotenv(override=True)

        self.config_path = config_path
        self.data = self._load_yaml()

    def _load_yaml(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_path):
            return {}
        try:
            with open(self.config_path, "r") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError:
            return {}

    def _section(self, name: str) -> Dict[str, Any]:
        return self.data.get(name, {}) or {}

    @property
    def db_name(self) -> str:
        return os.getenv("SYSVITAL_DB_NAME", self._section("database").get("name", "sysvital.db"))

    # --- REGLAS DE AMENAZA ---
    @property
    def malicious_ports(self) -> List[int]:
        ports = self._section("network").get("malicious_ports", DEFAULT_MALICIOUS_PORTS)
        return [int(p) for p in ports]

    @property
    def watchlist_countries(self) -> List[str]:
        countries = self._section("network").get("watchlist_countries", DEFAULT_WATCHLIST_COUNTRIES)
        return [c.upper() for c in countries]

    @property
    def safe_processes(self) -> List[str]:
        names = self._section("network").get("safe_processes", DEFAULT_SAFE_PROCESSES)
        return [n.lower() for n in names]

    # --- ENGINE ---
    @property
    def collect_timeout(self) -> float:
        return float(self._section("engine").get("collect_timeout", 30))

    @property
    def cleanup_min_age_hours(self) -> float:
        return float(self._section("cleanup").get("min_age_hours", 24))

    @property
    def startup_delay_ms(self) -> int:
        return int(self._section("startup").get("estimated_delay_ms", 1500))

    # --- NARRADOR (LLM) ---
    @property
    def narrator_api_key(self) -> str:
        return os.getenv("SYSVITAL_NARRATOR_API_KEY", "")

    @property
    def narrator_url(self) -> str:
        return os.getenv("SYSVITAL_NARRATOR_URL", "https://api.anthropic.com/v1/messages")

    @property
    def narrator_model(self) -> str:
        return self._section("narrator").get("model", "claude-3-sonnet-20240229")

    @property
    def narrator_rate_limit(self) -> int:
        return int(self._section("narrator").get("max_calls_per_minute", 20))

    # --- LOGGING ---
    @property
    def log_level(self) -> str:
        return os.getenv("SYSVITAL_LOG_LEVEL", self._section("logging").get("level", "WARNING"))

    @property
    def log_file(self) -> str:
        return self._section("logging").get("file", "")
