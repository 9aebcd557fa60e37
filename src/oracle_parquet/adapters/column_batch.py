from __future__ import annotations
import io
import os
from typing import Any, Iterable

import pyarrow as pa
import pyarrow.parquet as pq

from ..domain.errors import SchemaWriteError
from ..domain.schemas import OutputSchema


class ColumnBatch:
    """
    Column-major accumulator for one output schema. Every appended row lands
    in all columns; the whole batch is written as a single row group.
    Columns are keyed 1..N in declared schema order.
    """
    def __init__(self, schema: OutputSchema, codec: str = "snappy") -> None:
        self.schema = schema
        self.codec = codec
        self.columns: dict[int, list[Any]] = {i: [] for i in range(1, len(schema.columns) + 1)}

    def __len__(self) -> int:
        return len(self.columns[1]) if self.columns else 0

    def append(self, row: Any) -> None:
        # compute every cell before touching the buffers so a bad row leaves no partial state
        try:
            cells = [spec.value(row) for spec in self.schema.columns]
        except (AttributeError, TypeError, ValueError) as e:
            raise SchemaWriteError(f"{self.schema.name}: row does not fit schema: {e}") from e
        for idx, cell in enumerate(cells, start=1):
            self.columns[idx].append(cell)

    def extend(self, rows: Iterable[Any]) -> None:
        for row in rows:
            self.append(row)

    def to_table(self) -> pa.Table:
        arrays: list[pa.Array] = []
        for idx, spec in enumerate(self.schema.columns, start=1):
            try:
                arrays.append(pa.array(self.columns[idx], type=spec.type))
            except (pa.ArrowInvalid, pa.ArrowTypeError, OverflowError) as e:
                raise SchemaWriteError(f"{self.schema.name}.{spec.name}: {e}") from e
        return pa.Table.from_arrays(arrays, schema=self.schema.arrow())

    def _write(self, sink: Any) -> None:
        table = self.to_table()
        try:
            with pq.ParquetWriter(sink, table.schema, compression=self.codec) as writer:
                writer.write_table(table, row_group_size=max(1, table.num_rows))
        except (pa.ArrowException, OSError) as e:
            raise SchemaWriteError(f"{self.schema.name}: parquet write failed: {e}") from e

    def serialize(self) -> bytes:
        buf = io.BytesIO()
        self._write(buf)
        return buf.getvalue()

    def write(self, path: str) -> str:
        """Write atomically to `path` (tmp + replace); an existing file is overwritten."""
        tmp = path + ".tmp"
        try:
            self._write(tmp)
            os.replace(tmp, path)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)
        return path
