"""Custom exceptions for cloudspend"""

class CloudSpendError(Exception):
    """Base exception for all cloudspend errors"""
    pass


class ConfigurationError(CloudSpendError):
    """Raised when configuration is invalid"""
    pass


class ValidationError(CloudSpendError):
    """Raised when input validation fails"""
    pass


class DataLoadError(CloudSpendError):
    """Raised when cost data cannot be loaded"""
    pass


class AnalysisError(CloudSpendError):
    """Raised when analysis fails"""
    pass


class SchedulerError(CloudSpendError):
    """Raised when a task cannot be scheduled"""
    pass
