"""Exception hierarchy shared by the orchestrator, the stores and the adapters."""


class RelayWriterError(Exception):
    """Base class for every error raised by relaywriter."""


class InvalidArgument(RelayWriterError, ValueError):
    """Rejected request: raised before any state change or upstream call."""


class SessionStoreError(RelayWriterError):
    """The session backend could not be read or written."""


class GenerationError(RelayWriterError):
    """A TextGenerator failed to produce text."""


class Unauthorized(GenerationError):
    pass


class UpstreamUnavailable(GenerationError):
    pass


class UpstreamRejected(GenerationError):
    pass


class GenerationTimeout(GenerationError):
    pass


class MalformedUpstreamResponse(GenerationError):
    """The provider answered successfully but no text could be extracted."""


class UpstreamFailure(RelayWriterError):
    """A turn failed upstream; carries the contributor that was being asked."""

    def __init__(self, cause: Exception, contributor_id: str) -> None:
        self.cause = cause
        self.contributor_id = contributor_id
        super().__init__(f"Error with {contributor_id}: {cause}")
