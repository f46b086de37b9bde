"""Error kinds raised by the relevance engine."""


class RelevanceError(Exception):
    """Base class for all engine errors."""


class InputInvalidError(RelevanceError, ValueError):
    """Malformed input: empty owner, empty query, bad focus count, wrong item kind."""


class UpstreamUnavailableError(RelevanceError):
    """The similarity provider (embedding or vector search) could not answer."""


class EmbeddingUnavailableError(UpstreamUnavailableError):
    """The embedding backend is unreachable or returned an unusable vector."""


class LatencyBudgetExceededError(UpstreamUnavailableError):
    """A pipeline (provider call plus engine call) ran past its time budget."""


class CacheUnavailableError(RelevanceError):
    """A cache backend failed. Never escapes the scorer; results are computed fresh."""
