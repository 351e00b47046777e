"""Configuration management for the image catalog."""
import json
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration loaded from config.yaml and environment variables."""

    def __init__(self, config_path=None):
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        with open(config_path) as f:
            self._config = yaml.safe_load(f)

        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load environment variable overrides."""
        self.pl_api_key = os.getenv("PL_API_KEY")
        self.domain = os.getenv("DOMAIN")
        self.pz_auth = os.getenv("PZ_AUTH")
        self.vcap_services = os.getenv("VCAP_SERVICES")

        if os.getenv("CATALOG_PREFIX"):
            self._config["catalog"]["prefix"] = os.getenv("CATALOG_PREFIX")
        if os.getenv("PORT"):
            self._config["server"]["port"] = int(os.getenv("PORT"))
        if os.getenv("LOG_LEVEL"):
            self._config["logging"]["level"] = os.getenv("LOG_LEVEL")

    @property
    def prefix(self):
        return self._config["catalog"]["prefix"]

    @property
    def default_count(self):
        return self._config["catalog"]["default_count"]

    @property
    def max_count(self):
        return self._config["catalog"]["max_count"]

    @property
    def discovery_ttl(self):
        return self._config["catalog"]["discovery_ttl"]

    @property
    def build_timeout(self):
        return self._config["catalog"]["build_timeout"]

    @property
    def poll_interval(self):
        return self._config["catalog"]["poll_interval"]

    @property
    def poll_attempts(self):
        return self._config["catalog"]["poll_attempts"]

    @property
    def redis_options(self):
        """
        Connection keyword arguments for the key-value store.

        Credentials published by a bound ``p-redis`` service in VCAP_SERVICES
        win over the values in config.yaml.
        """
        options = {
            "host": self._config["redis"]["host"],
            "port": self._config["redis"]["port"],
            "db": self._config["redis"]["db"],
        }
        if self.vcap_services:
            services = json.loads(self.vcap_services)
            bindings = services.get("p-redis") or []
            if bindings:
                credentials = bindings[0].get("credentials", {})
                options["host"] = credentials.get("host", options["host"])
                options["port"] = int(credentials.get("port", options["port"]))
                if credentials.get("password"):
                    options["password"] = credentials["password"]
        return options

    @property
    def planet_base_url(self):
        return self._config["api"]["planet_base_url"]

    @property
    def dg_search_url(self):
        return self._config["api"]["dg_search_url"]

    @property
    def api_timeout(self):
        return self._config["api"]["timeout"]

    @property
    def pagination_delay(self):
        return self._config["api"]["pagination_delay"]

    @property
    def page_size(self):
        return self._config["api"]["page_size"]

    @property
    def wfs_max_features(self):
        return self._config["wfs"]["max_features"]

    @property
    def wfs_timeout(self):
        return self._config["wfs"]["timeout"]

    @property
    def event_type(self):
        return self._config["events"]["event_type"]

    @property
    def recurrence_key(self):
        return self._config["events"]["recurrence_key"]

    @property
    def pz_gateway(self):
        """Event bus gateway URL derived from DOMAIN, or None when unset."""
        if not self.domain:
            return None
        return f"https://pz-gateway.{self.domain}"

    @property
    def server_host(self):
        return self._config["server"]["host"]

    @property
    def server_port(self):
        return self._config["server"]["port"]

    @property
    def max_workers(self):
        return self._config["workers"]["max_workers"]

    @property
    def discovery_workers(self):
        return self._config["workers"]["discovery_workers"]

    @property
    def log_level(self):
        return self._config["logging"]["level"]

    @property
    def log_format(self):
        return self._config["logging"]["format"]


# Global config instance
config = Config()
