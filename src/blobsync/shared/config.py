import os
from logging import CRITICAL, DEBUG, ERROR, INFO, WARNING
from os import PathLike
from pathlib import Path
from tomllib import load

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = Path("config.toml")

# Environment variables understood by existing deployments, applied last.
ENV_OVERRIDES = {
    "PORT": ("network", "port"),
    "API_ROOT": ("network", "api_root"),
    "DATA_DIR": ("paths", "data"),
}


class General(BaseModel):
    title: str = "blobsync"


class Logging(BaseModel):
    level: int = INFO

    @field_validator("level", mode="before")
    @classmethod
    def convert_log_level(cls, value):
        if isinstance(value, int):
            return value
        log_levels = {
            "DEBUG": DEBUG,
            "INFO": INFO,
            "WARNING": WARNING,
            "ERROR": ERROR,
            "CRITICAL": CRITICAL,
        }
        return log_levels.get(str(value).upper(), INFO)


class Paths(BaseModel):
    logs: str = "logs"
    data: str = "./data"

    @field_validator("data")
    @classmethod
    def check_data_dir(cls, value: str) -> str:
        if not value:
            raise ValueError("DATA_DIR cannot be empty")
        if "\x00" in value:
            raise ValueError("DATA_DIR contains invalid characters")
        return value


class Files(BaseModel):
    max_uuid_length: int = Field(default=256, gt=0)
    max_encrypted_length: int = Field(default=10 * 1024 * 1024, gt=0)  # 10 MiB


class Cache(BaseModel):
    ttl: float = Field(default=300.0, gt=0)  # seconds
    sweep_interval: float = Field(default=60.0, gt=0)  # seconds


class RateLimit(BaseModel):
    timeout_period: int = 10
    requests_per_second: int = 20


class Network(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8088, ge=1, le=65535)
    reload: bool = False
    api_root: str = ""
    request_timeout: float = Field(default=30.0, gt=0)  # seconds

    rate_limit: RateLimit = Field(default_factory=RateLimit)

    @field_validator("api_root")
    @classmethod
    def normalise_api_root(cls, value: str) -> str:
        value = value.rstrip("/")
        if value and not value.startswith("/"):
            value = "/" + value
        return value


class Config(BaseModel):
    general: General = Field(default_factory=General)
    paths: Paths = Field(default_factory=Paths)
    files: Files = Field(default_factory=Files)
    cache: Cache = Field(default_factory=Cache)
    logging: Logging = Field(default_factory=Logging)
    network: Network = Field(default_factory=Network)


def load_config(
    shared_config_file: PathLike = DEFAULT_CONFIG_PATH,
    specific_config_file: PathLike | None = None,
) -> Config:
    """Load and merge configurations from TOML files and the environment.

    A missing shared config file is not an error; every setting has a default.
    """
    config_data = {}

    # Load shared config
    shared_path = Path(shared_config_file)
    if shared_path.exists():
        with shared_path.open("rb") as f:
            config_data = load(f)

    # Load and merge specific config if provided
    if specific_config_file:
        with Path(specific_config_file).open("rb") as f:
            specific_data = load(f)
            config_data.update(specific_data)

    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config_data.setdefault(section, {})[field] = value

    return Config(**config_data)
