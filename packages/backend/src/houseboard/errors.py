"""Error taxonomy shared by the store, pipeline, notifier and supervisor.

Learn: Errors are split by who caused them. Validation and duplicate
errors are the caller's fault and are never retried. StoreError means the
database is unhappy. The generator-side errors (spawn, parse) are logged
by the supervisor and never reach an HTTP caller except through the
start endpoint.
"""


class HouseboardError(Exception):
    """Base class for all domain errors."""


class EventValidationError(HouseboardError):
    """A raw event failed validation. `field` names the offending field."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class DuplicateEventError(HouseboardError):
    """An event with this id is already stored."""

    def __init__(self, event_id: str):
        super().__init__(f"Event '{event_id}' already exists")
        self.event_id = event_id


class StoreError(HouseboardError):
    """The backing store failed (I/O, connectivity, unexpected DB error)."""


class ProcessSpawnError(HouseboardError):
    """The generator process could not be started."""


class GeneratorParseError(HouseboardError):
    """A generator output line could not be parsed into a candidate event."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"Unparsable generator line ({reason}): {line[:200]!r}")
        self.line = line
        self.reason = reason


class SubscriberDeliveryError(HouseboardError):
    """Delivering a broadcast to one subscriber failed."""
