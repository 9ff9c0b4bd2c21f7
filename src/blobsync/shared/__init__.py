from .config import Config, load_config
from .logger import Logger, log_request_error

__all__ = ["Config", "Logger", "load_config", "log_request_error"]
