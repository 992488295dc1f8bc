"""Configuration management for mqtopic."""

import os
import json
import yaml
from typing import Dict, Optional, Any

from .logger import LEVELS


class Config:
    """Configuration manager with file and environment variable support."""
    
    def __init__(self, config_file: Optional[str] = None):
        self.config: Dict[str, Any] = {}
        self.config_file = config_file or os.getenv('MQTOPIC_CONFIG', 'mqtopic.yaml')
        self._load_config()
        self._load_env_overrides()
    
    def _load_config(self):
        """Load configuration from file, falling back to defaults."""
        self._set_defaults()
        if not os.path.exists(self.config_file):
            return
        
        try:
            with open(self.config_file, 'r') as f:
                if self.config_file.endswith('.yaml') or self.config_file.endswith('.yml'):
                    loaded = yaml.safe_load(f) or {}
                elif self.config_file.endswith('.json'):
                    loaded = json.load(f)
                else:
                    return
        except (OSError, ValueError, yaml.YAMLError):
            return
        
        if not isinstance(loaded, dict):
            return
        
        for section, values in loaded.items():
            if isinstance(values, dict):
                self.config.setdefault(section, {}).update(values)
    
    def _set_defaults(self):
        """Set default configuration values."""
        self.config = {
            "client": {
                "request_capacity": 10
            },
            "api": {
                "host": "0.0.0.0",
                "port": 8080
            },
            "monitoring": {
                "prometheus_enabled": False,
                "prometheus_port": 9090
            },
            "logging": {
                "level": "INFO"
            }
        }
    
    def _load_env_overrides(self):
        """Override config with environment variables."""
        env_mappings = {
            "CLIENT_REQUEST_CAPACITY": ("client", "request_capacity", int),
            "API_HOST": ("api", "host"),
            "API_PORT": ("api", "port", int),
            "PROMETHEUS_ENABLED": ("monitoring", "prometheus_enabled", lambda x: x.lower() == "true"),
            "PROMETHEUS_PORT": ("monitoring", "prometheus_port", int),
            "LOG_LEVEL": ("logging", "level", str.upper)
        }
        
        for env_key, (section, key, *converters) in env_mappings.items():
            value = os.getenv(env_key)
            if value is not None:
                if converters:
                    converter = converters[0]
                    try:
                        value = converter(value)
                    except (ValueError, TypeError):
                        continue
                if section not in self.config:
                    self.config[section] = {}
                self.config[section][key] = value
    
    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self.config.get(section, {}).get(key, default)
    
    def set(self, section: str, key: str, value: Any):
        """Set configuration value."""
        if section not in self.config:
            self.config[section] = {}
        self.config[section][key] = value
    
    def save(self, filename: Optional[str] = None):
        """Save configuration to file."""
        target_file = filename or self.config_file
        with open(target_file, 'w') as f:
            if target_file.endswith('.yaml') or target_file.endswith('.yml'):
                yaml.dump(self.config, f, default_flow_style=False)
            else:
                json.dump(self.config, f, indent=2)
    
    def validate(self) -> tuple[bool, list[str]]:
        """Validate configuration."""
        errors = []
        
        for section in ("api", "monitoring"):
            key = "port" if section == "api" else "prometheus_port"
            port = self.get(section, key)
            if not isinstance(port, int) or port < 1 or port > 65535:
                errors.append(f"Invalid {section} port")
        
        capacity = self.get("client", "request_capacity")
        if not isinstance(capacity, int) or capacity < 1:
            errors.append("Client request capacity must be a positive integer")
        
        level = self.get("logging", "level")
        if not isinstance(level, str) or level.upper() not in LEVELS:
            errors.append(f"Unknown log level: {level}")
        
        return len(errors) == 0, errors
