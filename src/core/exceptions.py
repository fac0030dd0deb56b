class PhotoShareError(Exception):
    """Base class for errors raised inside the upload worker."""


class BridgeError(PhotoShareError):
    """The web-side bridge could not be reached or answered with garbage."""


class ContentNotFoundError(PhotoShareError):
    """A content handle does not resolve to readable photo bytes."""
