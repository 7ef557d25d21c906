class ScannerError(Exception):
    """Raised when a scan request cannot be turned into scanner tasks."""
    pass

class PricingError(Exception):
    """Raised when an AWS Pricing API price list cannot be parsed."""
    pass

# Add other custom exception classes as needed
