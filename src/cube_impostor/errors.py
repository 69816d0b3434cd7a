"""Exceptions raised by the impostor baking pipeline."""


class ImpostorError(Exception):
    """Base exception for impostor baking errors"""
    pass


class InvalidConfigurationError(ImpostorError, ValueError):
    """Bad configuration or malformed input (texture size, bounds, missing faces)"""
    pass


class UpstreamRenderError(ImpostorError, RuntimeError):
    """The host renderer failed or returned an unusable buffer"""
    pass
