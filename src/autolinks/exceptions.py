"""
Custom exceptions for the autolinks engine.
"""
class AutolinksError(Exception):
    """Base exception for the autolinks engine."""
    pass

class ConfigurationError(AutolinksError):
    """Exception raised when a configuration file cannot be loaded or validated."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class PatternCompileError(AutolinksError):
    """Exception raised when a reference definition cannot be turned into a regex."""
    pass

class IntegrationLookupError(AutolinksError):
    """Exception raised when an integration id is not known to the registry."""
    def __init__(self, integration_id: str):
        self.integration_id = integration_id
        super().__init__(f"Unknown integration: {integration_id}")
