"""Hard-failure errors raised while extracting a statement file."""


class ExtractionError(ValueError):
    """Base class for failures that abort processing of one file."""


class UnsupportedFileError(ExtractionError):
    """File type or extension is not accepted."""


class EmptyFileError(ExtractionError):
    """Uploaded file has no content."""


class FileTooLargeError(ExtractionError):
    """Uploaded file exceeds the size ceiling."""


class MissingColumnError(ExtractionError):
    """A required column (date or an amount column) could not be mapped."""


class NoTransactionsError(ExtractionError):
    """The source produced zero candidate transactions."""


class TextExtractionError(ExtractionError):
    """No text could be obtained from a PDF or image."""


class OCRError(TextExtractionError):
    """The OCR engine failed or is not available."""
