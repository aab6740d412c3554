"""
Configuration management for AdCompliance
"""

import os
from pathlib import Path
from typing import Dict, Tuple

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""

    # Supabase (analysis store + usage ledger)
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # AI providers
    GEMINI_API_KEY: str = os.getenv('GEMINI_API_KEY', '')
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')
    OCR_MODEL: str = os.getenv('OCR_MODEL', 'gemini-2.0-flash')

    # Local media written by the scraper (images, landing page screenshots)
    MEDIA_ROOT: str = os.getenv('MEDIA_ROOT', './media')

    # Analysis defaults
    REANALYSIS_MAX_AGE_DAYS: int = int(os.getenv('REANALYSIS_MAX_AGE_DAYS', '30'))
    JUDGMENT_TIMEOUT_SECONDS: float = float(os.getenv('JUDGMENT_TIMEOUT_SECONDS', '120'))
    LANDING_PAGE_CONTENT_LIMIT: int = 3000
    CREATIVE_WEIGHT: float = 0.6
    LANDING_PAGE_WEIGHT: float = 0.4

    # Performance
    DEFAULT_CONCURRENCY: int = int(os.getenv('CONCURRENCY', '5'))

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    # ========================================================================
    # Model Configuration
    # ========================================================================

    DEFAULT_MODEL = "openai:gpt-4o"
    COMPLIANCE_MODEL = "openai:gpt-4o"
    FAST_MODEL = "openai:gpt-4o-mini"

    @classmethod
    def get_model(cls, key: str) -> str:
        """
        Get the configured LLM model for a component.

        Resolution Order:
        1. Environment Variable: {KEY}_MODEL (e.g. COMPLIANCE_MODEL)
        2. Default mapping in this method
        3. Config.DEFAULT_MODEL

        Args:
            key: component name (e.g., 'compliance'), case-insensitive

        Returns:
            pydantic-ai model string (e.g., 'openai:gpt-4o')
        """
        key_upper = key.upper()

        env_model = os.getenv(f"{key_upper}_MODEL")
        if env_model:
            return env_model

        mappings = {
            "COMPLIANCE": cls.COMPLIANCE_MODEL,
            "FAST": cls.FAST_MODEL,
        }
        return mappings.get(key_upper, cls.DEFAULT_MODEL)

    # ========================================================================
    # Pricing (USD per 1M tokens: input, output)
    # ========================================================================

    TOKEN_COSTS: Dict[str, Tuple[float, float]] = {
        'gpt-4o': (2.50, 10.00),
        'gpt-4o-mini': (0.15, 0.60),
        'gpt-4-turbo': (10.00, 30.00),
        'gpt-4': (30.00, 60.00),
        'gpt-3.5-turbo': (0.50, 1.50),
        'claude-sonnet-4-5': (3.00, 15.00),
        'gemini-2.0-flash': (0.10, 0.40),
    }

    @classmethod
    def get_token_cost(cls, model: str) -> Tuple[float, float]:
        """
        Look up per-million-token (input, output) rates for a model.

        Provider prefixes ('openai:') and dated suffixes are ignored by
        matching the longest known model name the identifier starts with.
        Unknown models cost (0.0, 0.0).
        """
        name = model.split(':', 1)[-1].lower()
        for known in sorted(cls.TOKEN_COSTS, key=len, reverse=True):
            if name.startswith(known):
                return cls.TOKEN_COSTS[known]
        return (0.0, 0.0)


def load_rule_overrides(path: str) -> Dict[str, Dict[str, bool]]:
    """
    Load per-task rule toggles from a YAML file.

    Expected shape::

        creative:
          clickbait: false
        landing_page:
          user_experience: false

    Args:
        path: Path to the YAML file

    Returns:
        Mapping of task kind -> {rule name: enabled}

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a mapping of mappings of booleans
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Rule override file not found at {config_path}")

    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"{config_path} must contain a mapping of task kinds")

    overrides: Dict[str, Dict[str, bool]] = {}
    for task, rules in raw.items():
        if not isinstance(rules, dict) or not all(isinstance(v, bool) for v in rules.values()):
            raise ValueError(f"Rules for '{task}' in {config_path} must map rule names to true/false")
        overrides[str(task)] = {str(k): v for k, v in rules.items()}

    return overrides
