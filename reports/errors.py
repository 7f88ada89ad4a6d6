class ConfigError(ValueError):
    """Raised when the Firebase configuration or a timezone setting cannot be used."""
