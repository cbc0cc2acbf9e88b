# Configuration loader with environment variable support

import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError
from .models import GraphIndexBaseModel

logger = logging.getLogger(__name__)

WORKSPACE_INDEXING_MODES = {"onlyLive", "onlyOrigin", "full"}

# Mapping applied to a property when its type has no explicit mapping
DEFAULT_CONFIGURATION_PER_TYPE: Dict[str, Dict] = {
    "string": {"elasticSearchMapping": {"type": "text"}},
    "boolean": {"elasticSearchMapping": {"type": "boolean"}},
    "integer": {"elasticSearchMapping": {"type": "integer"}},
    "float": {"elasticSearchMapping": {"type": "float"}},
    "DateTime": {
        "elasticSearchMapping": {"type": "date", "format": "date_time_no_millis"}
    },
    "array": {"elasticSearchMapping": {"type": "keyword"}},
    "reference": {"elasticSearchMapping": {"type": "keyword"}},
    "references": {"elasticSearchMapping": {"type": "keyword"}},
}


class IndexConfig(BaseModel):
    """Naming and settings of the physical index generations"""

    name: str = "content"
    number_of_shards: int = Field(default=1, gt=0)
    number_of_replicas: int = Field(default=0, ge=0)

    @validator("name")
    def validate_name(cls, v):
        """Index names must be lowercase and must not contain a dash at the start"""
        if not v or v != v.lower() or v.startswith(("-", "_", "+")):
            raise ValueError(f"index name must be lowercase and well formed, got {v!r}")
        return v


class IndexingConfig(BaseModel):
    batch_size: int = Field(default=100, gt=0)
    # Byte ceiling of one bulk request body
    max_bulk_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    workspace_mode: str = Field(default="onlyLive")
    use_workers: bool = False
    max_workers: int = Field(default=4, gt=0)

    @validator("workspace_mode")
    def validate_workspace_mode(cls, v):
        if v not in WORKSPACE_INDEXING_MODES:
            raise ValueError(
                f"workspace_mode must be one of {sorted(WORKSPACE_INDEXING_MODES)}, got {v}"
            )
        return v


class DimensionsConfig(BaseModel):
    """Allowed content dimension presets, e.g. {"language": ["en", "de"]}"""

    presets: Dict[str, List[str]] = Field(default_factory=dict)

    @validator("presets")
    def validate_presets(cls, v):
        for dimension, values in v.items():
            if dimension.startswith("_"):
                raise ValueError(f"dimension names starting with _ are reserved: {dimension}")
            if not values:
                raise ValueError(f"dimension {dimension} needs at least one value")
        return v


class GraphConfig(BaseModel):
    source: str = Field(default="file")
    path: Optional[str] = None

    @validator("source")
    def validate_source(cls, v):
        if v not in {"file", "neo4j"}:
            raise ValueError(f"graph.source must be 'file' or 'neo4j', got {v}")
        return v


class NodeTypesConfig(BaseModel):
    path: str = "node_types.yaml"


class MappingConfig(BaseModel):
    default_configuration_per_type: Dict[str, Dict] = Field(
        default_factory=lambda: dict(DEFAULT_CONFIGURATION_PER_TYPE)
    )


class Config(GraphIndexBaseModel):
    """Main configuration model"""

    index: IndexConfig = Field(default_factory=IndexConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    dimensions: DimensionsConfig = Field(default_factory=DimensionsConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)
    node_types: NodeTypesConfig = Field(default_factory=NodeTypesConfig)
    mapping: MappingConfig = Field(default_factory=MappingConfig)


class Settings(BaseSettings):
    """Environment-based settings"""

    # Environment
    env: str = Field(default="development", alias="ENV")
    config_path: Optional[str] = Field(default=None, alias="CONFIG_PATH")

    # Elasticsearch
    elasticsearch_url: str = Field(
        default="http://localhost:9200", alias="ELASTICSEARCH_URL"
    )
    elasticsearch_username: Optional[str] = Field(
        default=None, alias="ELASTICSEARCH_USERNAME"
    )
    elasticsearch_password: Optional[str] = Field(
        default=None, alias="ELASTICSEARCH_PASSWORD"
    )
    elasticsearch_timeout: int = Field(default=60, alias="ELASTICSEARCH_TIMEOUT")

    # Neo4j (only required when graph.source is neo4j)
    neo4j_uri: str = Field(default="bolt://localhost:7687", alias="NEO4J_URI")
    neo4j_user: str = Field(default="neo4j", alias="NEO4J_USER")
    neo4j_password: str = Field(default="", alias="NEO4J_PASSWORD")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


def resolve_config_dir(config_path: Path) -> Path:
    """Relative paths inside a config file are resolved against its directory"""
    return config_path.parent.resolve()


def load_config() -> tuple[Config, Settings]:
    """
    Load configuration from YAML file and environment variables.

    Returns:
        tuple: (Config, Settings) - YAML config and environment settings

    Raises:
        ConfigurationError: If the config file is missing or invalid
    """
    settings = Settings()

    if settings.config_path:
        config_path = Path(settings.config_path)
    else:
        config_path = Path(__file__).parent.parent.parent / "config" / f"{settings.env}.yaml"

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, "r") as f:
        config_dict = yaml.safe_load(f) or {}

    try:
        config = Config(**config_dict)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {exc}") from exc

    base_dir = resolve_config_dir(config_path)
    node_types_path = Path(config.node_types.path)
    if not node_types_path.is_absolute():
        config.node_types.path = str(base_dir / node_types_path)
    if config.graph.path and not Path(config.graph.path).is_absolute():
        config.graph.path = str(base_dir / config.graph.path)

    logger.info(
        "Index configuration loaded: name=%s batch_size=%s workspace_mode=%s workers=%s",
        config.index.name,
        config.indexing.batch_size,
        config.indexing.workspace_mode,
        config.indexing.max_workers if config.indexing.use_workers else 0,
    )

    return config, settings


# Global config instances (loaded once at startup)
_config: Optional[Config] = None
_settings: Optional[Settings] = None


def get_config() -> Config:
    """Get the global Config instance"""
    global _config
    if _config is None:
        init_config()
    return _config


def get_settings() -> Settings:
    """Get the global Settings instance"""
    global _settings
    if _settings is None:
        init_config()
    return _settings


def init_config() -> tuple[Config, Settings]:
    """Initialize and cache global config instances"""
    global _config, _settings
    _config, _settings = load_config()
    return _config, _settings


def reload_config() -> tuple[Config, Settings]:
    """Force reload of config/settings from disk and environment."""
    return init_config()
