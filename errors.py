class LabelCropError(ValueError):
    """Base class for every failure a label run can end with."""


class InvalidInput(LabelCropError):
    """Zero-sized, malformed or undecodable input."""


class UnsupportedInput(LabelCropError):
    """The declared document type is neither a PDF nor an image."""


class NoLabelDetected(LabelCropError):
    def __init__(self, message="No shipping label detected. Try retaking the photo "
                               "or uploading a clearer scan."):
        super().__init__(message)


class EngineNotReady(LabelCropError):
    """The vision engine handed to the processor failed its readiness check."""
