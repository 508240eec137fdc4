"""
StreamingProcessor - Mask large record streams and log files in chunks.

Records are buffered chunk_size at a time and masked lazily, so a file of any
size is processed in bounded memory.
"""

import logging
from typing import Any, Callable, Iterable, Iterator, Optional

from .errors import StreamingOperationError
from .records import Record

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000

LineParser = Callable[[str], Record]
Formatter = Callable[[Record], str]


class StreamingProcessor:
    """
    Chunked, lazy masking of record streams.

    Args:
        engine: Anything with process(record) -> Record (MaskingEngine,
            PluginAwareEngine or StrategyManager).
        chunk_size: Records buffered per chunk.
        audit_logger: Receives ("streaming.chunk_processed", chunk length,
            records done so far) after each chunk.

    Example:
        processor = StreamingProcessor(MaskingEngine())
        for record in processor.process_file("app.log", lambda line: Record(line)):
            ship(record)
    """

    def __init__(
        self,
        engine: Any,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self.engine = engine
        self.chunk_size = chunk_size
        self.audit_logger = audit_logger

    def set_audit_logger(self, audit_logger: Optional[Callable[[str, Any, Any], None]]) -> None:
        self.audit_logger = audit_logger

    def process_stream(self, records: Iterable[Record]) -> Iterator[Record]:
        """Mask records chunk by chunk, yielding them in input order."""
        buffer: list[Record] = []
        done = 0
        for record in records:
            buffer.append(record)
            if len(buffer) >= self.chunk_size:
                yield from self._process_chunk(buffer, done)
                done += len(buffer)
                buffer = []
        if buffer:
            yield from self._process_chunk(buffer, done)

    def process_file(self, file_path: str, line_parser: LineParser) -> Iterator[Record]:
        """
        Parse and mask a log file line by line. Blank lines are skipped.

        Raises:
            StreamingOperationError: On first iteration, if the file cannot
                be opened.
        """
        try:
            handle = open(file_path, encoding="utf-8")
        except OSError as e:
            raise StreamingOperationError.cannot_open_input_file(file_path, e.strerror or str(e)) from e

        with handle:
            lines = (line.strip() for line in handle)
            yield from self.process_stream(line_parser(line) for line in lines if line)

    def process_to_file(self, records: Iterable[Record], output_path: str, formatter: Formatter) -> int:
        """
        Mask records and write one formatted line per record.

        Returns:
            The number of records written.

        Raises:
            StreamingOperationError: If the output file cannot be opened.
        """
        try:
            handle = open(output_path, "w", encoding="utf-8")
        except OSError as e:
            raise StreamingOperationError.cannot_open_output_file(output_path, e.strerror or str(e)) from e

        count = 0
        with handle:
            for record in self.process_stream(records):
                handle.write(formatter(record) + "\n")
                count += 1
        logger.info(f"Streamed {count} masked records to {output_path}")
        return count

    def get_statistics(self, records: Iterable[Record]) -> dict[str, int]:
        """Count records processed and records that masking changed."""
        stats = {"processed": 0, "masked": 0}
        for record in records:
            masked = self.engine.process(record)
            stats["processed"] += 1
            if masked.message != record.message or masked.context != record.context:
                stats["masked"] += 1
        return stats

    def _process_chunk(self, chunk: list[Record], done: int) -> Iterator[Record]:
        for record in chunk:
            yield self.engine.process(record)
        if self.audit_logger is not None:
            self.audit_logger("streaming.chunk_processed", len(chunk), done + len(chunk))
