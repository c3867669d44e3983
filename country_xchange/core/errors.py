class CountryXchangeError(Exception):
    """Base class for refresh pipeline failures."""


class SourceUnavailable(CountryXchangeError):
    """An upstream data source could not be fetched or returned unusable data."""

    def __init__(self, source, details=None):
        self.source = source
        self.details = details
        message = f"Could not fetch data from {source}"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


class RecordPersistError(CountryXchangeError):
    """A single country record could not be written to storage."""

    def __init__(self, name, details=None):
        self.name = name
        self.details = details
        super().__init__(f"Could not persist country '{name}': {details}")


class ArtifactRenderError(CountryXchangeError):
    """The summary image could not be rendered or written.

    ``outcome`` carries the refresh result when the failure happens after
    the upsert pass, since those writes are kept.
    """

    def __init__(self, details, outcome=None):
        self.details = details
        self.outcome = outcome
        super().__init__(f"Could not generate summary image: {details}")
