import json
from pathlib import Path
from typing import Dict

from replay.errors import DeliveryError


class Recorder:
    """
    Sink that appends every outgoing record to a JSONL file instead of the network.

    Example:
        rec = Recorder("out/sent.jsonl")
        rec.open()
        rec.send({"_id": "1", "datetimevalidity": "2024-01-01 00:00:00"})
        rec.close()

    The output can be replayed again with JsonLinesSource.
    """

    def __init__(self, path: str, append: bool = True):
        self.path = Path(path)
        self.append = append
        self.sent = 0
        self._fh = None

    def open(self) -> None:
        """Open the output file; send() opens it lazily if not called."""
        if self._fh is not None:
            return
        self._ensure_parent(self.path)
        self._fh = self.path.open("a" if self.append else "w", encoding="utf-8")

    def send(self, record: Dict[str, str]) -> None:
        try:
            self.open()
            self._write_json_line(self._fh, record)
            self._fh.flush()
        except OSError as e:
            raise DeliveryError(f"Failed to write {self.path}: {e}") from e
        self.sent += 1

    def close(self) -> None:
        """Release the file handle."""
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    # ---- helpers ----
    @staticmethod
    def _write_json_line(fh, obj: Dict) -> None:
        fh.write(json.dumps(obj, ensure_ascii=False) + "\n")

    @staticmethod
    def _ensure_parent(path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
