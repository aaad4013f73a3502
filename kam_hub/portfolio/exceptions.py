"""Typed errors raised by the portfolio query and mutation layer."""


class PortfolioError(Exception):
    """Base exception for portfolio errors"""
    pass


class NotFoundError(PortfolioError):
    """Raised when a single-row read or keyed update matches zero rows"""
    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class StoreError(PortfolioError):
    """Raised when the store or its transport reports a failure"""
    def __init__(self, message: str, operation: str = ''):
        self.message = message
        self.operation = operation
        prefix = f"{operation} failed: " if operation else ''
        super().__init__(f"{prefix}{message}")


class PreconditionError(PortfolioError):
    """Raised when an operation is called without a required identifier"""
    pass
