from .logging_utils import AppTimeFormatter, configure_logging, create_app_time_formatter

__all__ = ["AppTimeFormatter", "configure_logging", "create_app_time_formatter"]
