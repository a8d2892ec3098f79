"""postbridge - import interlinked notes and publish them as permanent posts."""

__version__ = "0.1.0"
