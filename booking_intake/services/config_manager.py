import os
import yaml
from pathlib import Path
from string import Template
from typing import Optional
from dotenv import load_dotenv
import structlog
from pydantic import ValidationError

from booking_intake.models.config import IntakeConfig
from booking_intake.utils.security import PathSanitizer, SecurityError

logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Configuration validation failed"""

    pass


class ConfigManager:
    """Loads intake configuration from YAML with ${VAR} substitution"""

    def __init__(
        self,
        config_path: str = "config/intake_config.yaml",
        project_root: Optional[Path] = None,
    ):
        self.config_path = Path(config_path)
        self.env_loaded = False
        self._config: Optional[IntakeConfig] = None

        self.project_root = project_root or Path.cwd()
        self.path_sanitizer = PathSanitizer(self.project_root)

    def load_config(self) -> IntakeConfig:
        """Load and validate configuration"""
        if self._config:
            return self._config

        # 1. Load environment
        if not self.env_loaded:  # pragma: no cover
            load_dotenv()
            self.env_loaded = True

        # 2. Check file existence
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        # 3. Read YAML
        try:
            with open(self.config_path) as f:
                raw_content = f.read()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # 4. Substitute env vars; unresolved ${VAR} stays literal and
        # LLMConfig treats it as a missing key
        try:
            template = Template(raw_content)
            substituted_content = template.safe_substitute(os.environ)
            config_data = yaml.safe_load(substituted_content) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError(
                "Invalid configuration: top level must be a mapping"
            )

        # 5. Validate with Pydantic
        try:
            self._config = IntakeConfig(**config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info(
            "config_loaded",
            path=str(self.config_path),
            llm_provider=self._config.llm.provider if self._config.llm else None,
            has_credentials=bool(self._config.llm and self._config.llm.has_credentials),
        )
        return self._config

    def get_store_dir(self) -> Path:
        """Resolve the job store directory inside the project root"""
        config = self.load_config()
        try:
            store_dir = self.path_sanitizer.resolve(config.jobs.store_dir)
        except SecurityError as e:
            raise SecurityError(f"Security violation resolving store_dir: {e}")
        store_dir.mkdir(parents=True, exist_ok=True)
        return store_dir
