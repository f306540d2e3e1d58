from .logging_config import ColoredFormatter, log_function_timing, setup_logging

__all__ = ['ColoredFormatter', 'log_function_timing', 'setup_logging']
