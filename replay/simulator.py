from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from config import SimulatorConfig
from delivery.http_push import HttpPushSink
from delivery.udp_sink import DEFAULT_BROADCAST_PORT, UdpBroadcastSink, validate_port
from replay.errors import InitializationError
from replay.rate import RateSpec
from replay.recorder import Recorder
from replay.scheduler import PlaybackScheduler
from replay.settings import PlaybackSettings
from replay.source import open_source

logger = logging.getLogger(__name__)


class Simulator:
    """
    Message simulator: one message file, one sink, one playback schedule.

    Usage:
        sim = Simulator()
        sim.load("data/sample.xml")
        sim.set_frequency(50, 6, "minutes")
        sim.set_time_override_fields(["datetimevalidity"])
        sim.start()
        ...
        sim.close()
    """

    def __init__(
        self,
        sink: Any = None,
        settings: Optional[PlaybackSettings] = None,
        port: int = DEFAULT_BROADCAST_PORT,
        verbose: bool = False,
        **scheduler_kwargs,
    ):
        self._port = validate_port(port)
        self.sink = sink if sink is not None else UdpBroadcastSink(port=self._port)
        self.settings = settings or PlaybackSettings()
        self.scheduler = PlaybackScheduler(self.sink, self.settings, **scheduler_kwargs)
        self._verbose = bool(verbose)
        self.file_path: Optional[Path] = None
        self.delivery_errors = 0
        self.last_error: Optional[str] = None
        self.scheduler.add_listener("message_ready", self._on_message_ready)
        self.scheduler.add_listener("delivery_error", self._on_delivery_error)

    @classmethod
    def from_config(cls, cfg: SimulatorConfig, record_path: Optional[str] = None, **kwargs) -> "Simulator":
        """Build a simulator from environment config; record_path overrides the network sink."""
        if record_path:
            sink = Recorder(record_path)
        elif cfg.push_url:
            sink = HttpPushSink(cfg.push_url)
        else:
            sink = UdpBroadcastSink(port=cfg.port, host=cfg.host)
        settings = PlaybackSettings(
            rate=RateSpec.create(cfg.frequency, cfg.time_count, cfg.time_unit),
            throughput=cfg.throughput,
            time_override_fields=cfg.time_override_fields,
            end_of_stream=cfg.end_of_stream,
        )
        return cls(sink=sink, settings=settings, port=cfg.port, verbose=cfg.verbose, **kwargs)

    # ---- lifecycle ----
    def load(self, path: Union[str, Path]) -> List[str]:
        """Open a message file and rewind playback to its first record."""
        self.file_path = None
        try:
            source = open_source(path)
        except InitializationError:
            self.scheduler.reset()
            raise
        try:
            fields = self.scheduler.initialize(source)
        except InitializationError:
            source.close()
            raise
        self.file_path = Path(path)
        logger.info(f"Loaded {self.file_path}: fields={fields}")
        return fields

    def start(self) -> bool:
        return self.scheduler.start()

    def pause(self) -> bool:
        return self.scheduler.pause()

    def resume(self) -> bool:
        return self.scheduler.resume()

    def stop(self) -> bool:
        return self.scheduler.stop()

    def close(self) -> None:
        self.scheduler.close()
        close = getattr(self.sink, "close", None)
        if callable(close):
            close()

    def simulation_started(self) -> bool:
        return self.scheduler.started

    # ---- configuration ----
    def set_frequency(self, count: Any, time_count: Any = 1.0, unit: Any = "seconds") -> float:
        return self.scheduler.set_frequency(count, time_count, unit)

    def message_frequency(self) -> float:
        """Broadcasts per second."""
        return self.settings.message_frequency

    def set_throughput(self, n: Any) -> int:
        return self.scheduler.set_throughput(n)

    def throughput(self) -> int:
        return self.settings.throughput

    def set_port(self, port: Any) -> int:
        value = validate_port(port)
        set_port = getattr(self.sink, "set_port", None)
        if callable(set_port):
            set_port(value)
        self._port = value
        return value

    def port(self) -> int:
        return self._port

    def set_verbose(self, verbose: bool) -> None:
        self._verbose = bool(verbose)

    def verbose(self) -> bool:
        return self._verbose

    def set_time_override_fields(self, fields: Iterable[str]) -> List[str]:
        return list(self.scheduler.set_time_override_fields(fields))

    def time_override_fields(self) -> List[str]:
        return list(self.settings.time_override_fields())

    def field_names(self) -> List[str]:
        return self.scheduler.field_names

    def set_end_of_stream(self, policy: Any) -> str:
        return self.settings.set_end_of_stream(policy).value

    def status(self) -> Dict[str, Any]:
        snap = self.settings.snapshot()
        return {
            "state": self.scheduler.state.value,
            "file": str(self.file_path) if self.file_path else None,
            "index": self.scheduler.cursor,
            "end_reached": self.scheduler.end_reached,
            "frequency": {
                "count": snap.rate.count,
                "time_count": snap.rate.time_count,
                "unit": snap.rate.unit,
                "interval_ms": snap.interval_ms,
                "per_second": snap.rate.per_second,
            },
            "throughput": snap.throughput,
            "time_override_fields": list(snap.time_override_fields),
            "end_of_stream": snap.end_of_stream.value,
            "port": self._port,
            "verbose": self._verbose,
            "field_names": self.field_names(),
            "delivery_errors": self.delivery_errors,
            "last_error": self.last_error,
        }

    # ---- listeners ----
    def _on_message_ready(self, record: Dict[str, str]) -> None:
        if self._verbose:
            logger.info(f"Sent message {self.scheduler.cursor}: {record}")
        else:
            logger.debug(f"Sent message {self.scheduler.cursor}")

    def _on_delivery_error(self, record: Dict[str, str], exc: Exception) -> None:
        self.delivery_errors += 1
        self.last_error = str(exc)
