"""Application configuration using Pydantic Settings."""

from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict


class UnreachablePolicy(str, Enum):
    """Where persons with no path from a BFS root are drawn."""
    ROOT = "root"        # flatten onto generation 0
    FOREST = "forest"    # level each disconnected fragment from its own roots


class EditFailurePolicy(str, Enum):
    """What happens to the local snapshot when a durable write fails."""
    KEEP = "keep"
    ROLLBACK = "rollback"


class LayoutSettings(BaseSettings):
    """Card geometry for the pedigree layout."""

    model_config = SettingsConfigDict(env_prefix="LAYOUT_")

    card_width: float = 160
    card_height: float = 80
    horizontal_spacing: float = 24
    vertical_spacing: float = 60
    unreachable_policy: UnreachablePolicy = UnreachablePolicy.FOREST


class ViewSettings(BaseSettings):
    """Viewport, zoom and auto-collapse settings."""

    model_config = SettingsConfigDict(env_prefix="VIEW_")

    auto_collapse_generation: int = 8
    cull_padding: float = 300
    min_scale: float = 0.15
    max_scale: float = 3.0
    wheel_zoom_in: float = 1.1
    wheel_zoom_out: float = 0.9
    full_detail_scale: float = 0.6
    compact_scale: float = 0.3
    fit_padding: float = 40
    fit_max_scale: float = 1.2
    fit_min_scale: float = 0.12
    bundle_offset: float = 40


class DatabaseSettings(BaseSettings):
    """Database path settings."""

    tree_db_path: str = "data/pedigree.db"


class RemoteApiSettings(BaseSettings):
    """Remote genealogy API tried before the local store."""

    model_config = SettingsConfigDict(env_prefix="TREE_API_")

    url: str = ""
    token: str = ""
    timeout: float = 3.0


class EditSettings(BaseSettings):
    """Editor behaviour."""

    model_config = SettingsConfigDict(env_prefix="EDIT_")

    failure_policy: EditFailurePolicy = EditFailurePolicy.KEEP


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    layout: LayoutSettings = LayoutSettings()
    view: ViewSettings = ViewSettings()
    database: DatabaseSettings = DatabaseSettings()
    remote_api: RemoteApiSettings = RemoteApiSettings()
    edit: EditSettings = EditSettings()


settings = Settings()
