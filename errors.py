from werkzeug.exceptions import BadRequest, InternalServerError, NotFound


class ConfigError(ValueError):
    """Raised when the server configuration is invalid."""


class EncodingError(ValueError):
    """Raised when text does not fit in a QR code."""


class AddressResolutionFailure(OSError):
    """Raised internally when the LAN address cannot be determined."""


class DirectoryUnreadable(InternalServerError):
    description = "The shared folder could not be read."


class PersistError(InternalServerError):
    description = "The uploaded file could not be saved."


class InvalidUploadName(BadRequest):
    description = "Uploaded file has no usable name."


class FileNotFound(NotFound):
    description = "File not found."
