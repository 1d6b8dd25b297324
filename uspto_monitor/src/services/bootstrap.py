from typing import List

from loguru import logger

from ..config import Config


class ServiceBootstrapper:
    """Startup checks for configuration and local directories."""

    @staticmethod
    def missing_settings() -> List[str]:
        """Names of required settings that are unset or empty."""
        return [name for name in Config.REQUIRED_SETTINGS if not getattr(Config, name, None)]

    @classmethod
    def bootstrap(cls) -> List[str]:
        """Prepare directories and report missing settings.

        Missing settings are warnings: the matching collaborators log what they
        would have done instead of failing the run.
        """
        Config.initialize_directories()
        missing = cls.missing_settings()
        if missing:
            logger.warning(f"[bootstrap] missing environment variables: {', '.join(missing)}")
        else:
            logger.info("[bootstrap] configuration complete.")
        return missing
