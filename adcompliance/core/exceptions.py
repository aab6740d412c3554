"""
Exception types raised at the engine's collaborator boundaries.
"""


class ComplianceEngineError(Exception):
    """Base class for all engine errors."""


class OcrError(ComplianceEngineError):
    """Text extraction from an ad image failed."""


class TranscriptionError(ComplianceEngineError):
    """Audio transcription of an ad video failed."""


class TransportError(ComplianceEngineError):
    """The reasoning service could not be reached or did not answer in time."""


class AnalysisStoreError(ComplianceEngineError):
    """Reading or writing a stored compliance analysis failed."""
