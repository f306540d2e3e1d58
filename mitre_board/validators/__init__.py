from .path_validator import PathValidator

__all__ = ['PathValidator']
