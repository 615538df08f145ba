class ConfigurationError(Exception):
    """Raised when required source credentials are missing."""


class SourceFetchError(Exception):
    """
    Raised when a page cannot be fetched from the external source.

    Covers non-success HTTP statuses, transport failures and undecodable
    responses. Aborts the remaining pagination of an import run.
    """


class ImageFetchFailure(Exception):
    """
    Raised when a product image cannot be downloaded or stored.

    The message is a short human-readable reason which ends up in
    ``Product.image_error``.
    """


class ImageTooLarge(ImageFetchFailure):
    pass
