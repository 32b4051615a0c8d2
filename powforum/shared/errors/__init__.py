from .base import (
    AppError,
    ConfigMissingError,
    DomainError,
    InfrastructureError,
    PersistenceUnavailableError,
    SecretGenerationError,
    SessionResolutionError,
    ValidationError,
)

__all__ = [
    "AppError",
    "ConfigMissingError",
    "DomainError",
    "InfrastructureError",
    "PersistenceUnavailableError",
    "SecretGenerationError",
    "SessionResolutionError",
    "ValidationError",
]
