from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "Expropriation Case Engine"
    debug: bool = False

    # Workflow
    workflow_config_path: Optional[str] = None  # YAML stage graph; built-in workflow if unset
    require_return_reason: bool = True
    require_checklist: bool = True

    # Access control
    bypass_roles: str = "super_admin"

    @property
    def bypass_roles_list(self) -> list[str]:
        return [role.strip() for role in self.bypass_roles.split(",") if role.strip()]

    # Logging
    log_level: str = "INFO"
    log_dir: str = "/var/log/expropriation"
    file_logging: bool = False

    model_config = SettingsConfigDict(
        env_prefix="EXPROPRIATION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
