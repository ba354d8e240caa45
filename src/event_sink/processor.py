import asyncio
import logging

from event_sink.domain import Event
from event_sink.extraction import Extractor
from event_sink.path_registry import PathRegistry
from event_sink.writer import RecordWriter

logger = logging.getLogger(__name__)


class EventProcessor:
    """
    Single entry point used by the transport for every inbound event.

    Returns the number of rows written: 0 when no field matched, 1 otherwise.
    """

    def __init__(self, registry: PathRegistry, writer: RecordWriter, *, disable_try_parse: bool = False):
        self.registry = registry
        self.writer = writer
        self.extractor = Extractor(registry, writer, allow_fallback_parse=not disable_try_parse)

    async def extract_and_persist(self, event: Event) -> int:
        record = self.extractor.extract(event)
        if record is None:
            return 0

        # The insert runs to completion even if the request that triggered it goes away.
        await asyncio.shield(self.writer.persist(record))
        logger.debug("Persisted event %s (%s columns)", event.id, len(record))
        return 1
