"""Microsoft Graph device code client: token lifecycle, menu dispatcher, OneDrive chunked upload."""

__version__ = "0.1.0"
