"""Sequential readers over recorded geomessage files.

A source yields one record at a time as a plain dict (field name -> str value,
in file order). Sources are single pass: construct a fresh one to replay from
the beginning.

Example:
    src = open_source("data/sample.xml")
    print(src.field_names)
    for msg in src:
        ...
    src.close()
"""
from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from replay.errors import SourceNotFoundError, SourceParseError

logger = logging.getLogger(__name__)

GeoMessage = Dict[str, str]

ROOT_TAGS = ("geomessages", "messages")
RECORD_TAGS = ("geomessage", "message")
JSONL_SUFFIXES = (".jsonl", ".ndjson")


class MessageSource:
    """Common behaviour: peek the first record on open, then hand out records lazily."""

    def __init__(self) -> None:
        self.path: Optional[Path] = None
        self._fh = None
        self._field_names: List[str] = []
        self._pending: Optional[GeoMessage] = None
        self._end_reached = False

    @property
    def field_names(self) -> List[str]:
        return list(self._field_names)

    @property
    def end_reached(self) -> bool:
        return self._end_reached

    def open(self, path: Union[str, Path]) -> List[str]:
        """Open `path` and return the field names of its first well-formed record."""
        p = Path(path)
        if not p.is_file():
            raise SourceNotFoundError(f"message file not found: {p}")
        self.close()
        self.path = p
        self._end_reached = False
        try:
            self._fh = p.open("rb")
        except OSError as e:
            raise SourceParseError(f"cannot read message file {p}: {e}") from e
        self._start()
        first = self._read_record(initial=True)
        if first is None:
            self.close()
            raise SourceParseError(f"no well-formed message found in {p}")
        self._pending = first
        self._field_names = list(first.keys())
        logger.info(f"Opened {p} ({len(self._field_names)} fields)")
        return self.field_names

    def next_message(self) -> Optional[GeoMessage]:
        """Return the next record, or None once the stream is exhausted."""
        if self._pending is not None:
            msg, self._pending = self._pending, None
            return msg
        if self._end_reached or self._fh is None:
            self._end_reached = True
            return None
        msg = self._read_record(initial=False)
        if msg is None:
            self._end_reached = True
        return msg

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                logger.warning(f"Failed to close {self.path}")
        self._fh = None
        self._pending = None

    def __iter__(self) -> Iterator[GeoMessage]:
        while True:
            msg = self.next_message()
            if msg is None:
                return
            yield msg

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- format hooks ----
    def _start(self) -> None:
        pass

    def _read_record(self, initial: bool) -> Optional[GeoMessage]:
        raise NotImplementedError


class GeomessageXmlSource(MessageSource):
    """
    Reader for geomessage XML files:

        <geomessages>
          <geomessage v="1.0">
            <_type>position_report</_type>
            <_id>{3a8c...}</_id>
            <datetimevalidity>2013-03-05 18:01:00</datetimevalidity>
          </geomessage>
        </geomessages>

    Each child of a record element is one field. The legacy <messages>/<message>
    layout is accepted too.
    """

    def __init__(self) -> None:
        super().__init__()
        self._events = None
        self._root: Optional[ET.Element] = None
        self._depth = 0

    def _start(self) -> None:
        self._events = ET.iterparse(self._fh, events=("start", "end"))
        self._root = None
        self._depth = 0

    def _read_record(self, initial: bool) -> Optional[GeoMessage]:
        try:
            for event, elem in self._events:
                if event == "start":
                    self._depth += 1
                    if self._root is None:
                        self._root = elem
                        if _local(elem.tag) not in ROOT_TAGS:
                            logger.warning(f"Unexpected root element <{elem.tag}> in {self.path}")
                    continue
                self._depth -= 1
                if self._depth != 1 or _local(elem.tag) not in RECORD_TAGS:
                    continue
                record = {_local(child.tag): (child.text or "").strip() for child in elem}
                self._root.clear()
                if record:
                    return record
        except ET.ParseError as e:
            if initial:
                raise SourceParseError(f"malformed message file {self.path}: {e}") from e
            logger.error(f"Stopped reading {self.path}: {e}")
        return None


class JsonLinesSource(MessageSource):
    """Reader for JSONL files holding one flat JSON object per line."""

    def _read_record(self, initial: bool) -> Optional[GeoMessage]:
        for raw in self._fh:
            try:
                line = raw.decode("utf-8").strip()
            except UnicodeDecodeError:
                logger.warning(f"Skipping line that is not valid UTF-8 in {self.path}")
                continue
            if not line:
                continue
            try:
                obj = json.loads(line)
            except ValueError:
                logger.warning(f"Skipping malformed line in {self.path}")
                continue
            if not isinstance(obj, dict) or not obj:
                continue
            return {str(k): _to_str(v) for k, v in obj.items()}
        return None


def _local(tag: str) -> str:
    # drop any "{namespace}" prefix
    return tag.rsplit("}", 1)[-1]


def _to_str(v) -> str:
    if v is None:
        return ""
    if isinstance(v, (dict, list)):
        return json.dumps(v, ensure_ascii=False)
    return str(v)


def open_source(path: Union[str, Path]) -> MessageSource:
    """Open `path` with the reader matching its suffix."""
    p = Path(path)
    src: MessageSource
    if p.suffix.lower() in JSONL_SUFFIXES:
        src = JsonLinesSource()
    else:
        src = GeomessageXmlSource()
    src.open(p)
    return src
