"""Error types reported through an analyzer's error sink."""


class SoundMLError(Exception):
    """Base class for all errors raised or reported by SoundML."""


class ConstructionError(SoundMLError):
    """A classifier could not be created or configured for an audio format.

    Fatal for the buffer that triggered construction only; the next buffer
    attempts construction again.
    """


class ClassificationError(SoundMLError):
    """A live classifier failed mid-stream."""
