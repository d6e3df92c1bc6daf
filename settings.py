from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Templates shipped with the service; operator templates in assets_dir/templates win.
BUILTIN_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


class Settings(BaseSettings):
    chromium_executable_path: Path = Path("/usr/bin/chromium")

    host: str = "0.0.0.0"
    port: int = 8080
    environment: Literal["development", "production"] = "development"
    templates_hot_reload: bool = False
    assets_dir: Path = Path("./pdf-templates")
    formats_yaml: Path | None = None
    log_level: str = "INFO"
    log_asset_weights: bool = False
    service_name: str = "magic-book-pdf-service"
    allowed_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BOOKPDF_",
        env_file_encoding="utf-8",
    )

    @field_validator("port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def hot_reload_templates(self) -> bool:
        """Re-read templates on every render outside production, or when forced."""
        return self.templates_hot_reload or not self.is_production

    @property
    def template_dirs(self) -> list[Path]:
        return [self.assets_dir / "templates", BUILTIN_TEMPLATE_DIR]

    @property
    def font_search_dirs(self) -> list[Path]:
        return [
            self.assets_dir,
            self.assets_dir / "fonts",
            Path("assets/fonts"),
            Path("src/fonts"),
            Path("fonts"),
        ]

    @property
    def logo_path(self) -> Path:
        return self.assets_dir / "logo.png"

    @property
    def ornament_path(self) -> Path:
        return self.assets_dir / "Leafe.svg"

    @property
    def formats_yaml_path(self) -> Path:
        return self.formats_yaml or self.assets_dir / "formats.yaml"
