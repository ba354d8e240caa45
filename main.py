from logging.config import dictConfig

import uvicorn

from core.settings import LOGGING_CONFIG
from event_sink.http_app import create_app, writer_lifespan
from event_sink.path_registry import PathRegistry
from event_sink.processor import EventProcessor
from event_sink.service_config import ServiceConfig
from event_sink.writer import PostgresWriter

dictConfig(LOGGING_CONFIG)

def main():
    config = ServiceConfig()
    registry = PathRegistry.from_file(config.paths_file, time_column=config.postgresql.time_column)
    writer = PostgresWriter(config.postgresql)
    processor = EventProcessor(registry, writer, disable_try_parse=config.disable_try_parse)

    app = create_app(processor, config.http, lifespan=writer_lifespan(writer))

    uvicorn.run(app, host=config.http.host, port=config.http.port, log_config=None)

if __name__ == "__main__":
    main()
