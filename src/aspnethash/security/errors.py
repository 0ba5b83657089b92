class AspNetHashError(Exception):
    """Base class for all aspnethash errors."""


class LineError(AspNetHashError):
    """A single input line could not be processed. The run continues."""


class MissingDelimiterError(LineError):
    pass


class PayloadDecodeError(LineError):
    pass


class PayloadTooShortError(LineError):
    pass


class EntropyError(AspNetHashError):
    """The OS could not provide random bytes for a salt."""


class LineSourceError(AspNetHashError):
    """The input stream could not be read."""


class ConfigurationError(AspNetHashError):
    """Invalid combination of command line options."""


class OutputError(AspNetHashError):
    """A result line could not be written."""
