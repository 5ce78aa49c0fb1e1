"""Exceptions raised around the POP label rendering core."""


class PopTagError(Exception):
    """Base exception for all poptag errors."""
    def __init__(self, message="An internal error occurred", payload=None):
        super().__init__(message)
        self.message = message
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class DataUnavailable(PopTagError):
    """Raised when a product lookup returned nothing."""
    def __init__(self, message="Product not found", payload=None):
        super().__init__(message, payload)


class AssetLoadFailure(PopTagError):
    """Raised when a template, brand or product image cannot be loaded."""
    def __init__(self, source, reason=""):
        message = f"Failed to load image {source}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {'source': str(source)})
        self.source = source


class MalformedInput(PopTagError):
    """Raised when input data is structurally invalid."""


class ProductEntryError(MalformedInput):
    """Raised by the ad hoc product entry builder with a user-facing message."""
    def __init__(self, message, field=None):
        super().__init__(message, {'field': field} if field else None)
        self.field = field
