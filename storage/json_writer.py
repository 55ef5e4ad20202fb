import json
import logging
import os
from pathlib import Path
from typing import Iterable, List


log = logging.getLogger("storage.json_writer")


class JsonArrayWriter:
    """
    Writes one output file per call as a single JSON array of records.

    Responsibilities:
    - Serialise records (anything with ``as_dict()``) into one JSON array
    - Replace the target file atomically so readers never see half a file

    Non-responsibilities:
    - Appending to or merging with existing files
    - Schema validation
    """

    def __init__(self, directory: Path):
        self.dir = Path(directory)
        self.dir.mkdir(parents=True, exist_ok=True)

    def write(self, file_name: str, records: Iterable) -> Path:
        payload: List[dict] = [r.as_dict() for r in records]
        path = self.dir / file_name
        tmp = path.with_suffix(path.suffix + ".tmp")

        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(payload, fh)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)

        log.info("File created: %s (%d records)", path, len(payload))
        return path


def weights_file_name(cycle: int, token_name: str) -> str:
    return f"rings_cycle_{cycle}_{token_name}_beets.json"


def points_file_name(cycle: int, token_name: str) -> str:
    return f"rings_cycle_{cycle}_{token_name}_beets_points.json"
