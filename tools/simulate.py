"""Play a recorded geomessage file onto the network at a fixed rate."""
import argparse
import logging
import sys
import threading
from pathlib import Path

# Ensure project root is in path
PROJ_ROOT = Path(__file__).resolve().parents[1]
if str(PROJ_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJ_ROOT))

from config import SimulatorConfig, load_simulator_config
from delivery.udp_sink import validate_port
from replay.errors import ConfigurationError, InitializationError
from replay.simulator import Simulator

logger = logging.getLogger("simulate")


def build_parser(cfg=None) -> argparse.ArgumentParser:
    cfg = cfg or load_simulator_config()
    parser = argparse.ArgumentParser(description="Replay a geomessage file as a simulated live feed.")
    parser.add_argument('file', help='geomessage XML or JSONL file to play')
    parser.add_argument('--frequency', type=float, default=cfg.frequency,
                        help='number of broadcasts per --per/--unit window (default from GEOMSG_FREQUENCY)')
    parser.add_argument('--per', type=float, default=cfg.time_count, help='length of the rate window in --unit')
    parser.add_argument('--unit', default=cfg.time_unit, help='seconds, minutes, hours, days or weeks')
    parser.add_argument('--throughput', type=int, default=cfg.throughput,
                        help='messages per broadcast; values above 1 may not be accepted by receivers')
    parser.add_argument('--port', default=cfg.port, help='UDP destination port')
    parser.add_argument('--host', default=cfg.host, help='UDP destination address (default broadcast)')
    parser.add_argument('--time-fields', default=",".join(cfg.time_override_fields),
                        help='comma separated fields to overwrite with the current time')
    parser.add_argument('--on-end', choices=("stop", "idle"), default=cfg.end_of_stream,
                        help='stop when the file is exhausted, or keep the schedule running idle')
    sink = parser.add_mutually_exclusive_group()
    sink.add_argument('--push-url', default=cfg.push_url, help='POST messages to this HTTP endpoint instead of UDP')
    sink.add_argument('--record', default=None, help='append messages to this JSONL file instead of sending')
    parser.add_argument('--verbose', action='store_true', default=cfg.verbose, help='log every message sent')
    return parser


def run(args) -> int:
    cfg = SimulatorConfig(
        host=args.host,
        frequency=args.frequency,
        time_count=args.per,
        time_unit=args.unit,
        throughput=args.throughput,
        verbose=args.verbose,
        time_override_fields=[f for f in args.time_fields.split(",") if f.strip()],
        end_of_stream=args.on_end,
        push_url="" if args.record else (args.push_url or ""),
    )
    try:
        cfg.port = validate_port(args.port)
        sim = Simulator.from_config(cfg, record_path=args.record)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    done = threading.Event()
    if args.on_end == "stop":
        sim.scheduler.add_listener("end_of_stream", lambda index: done.set())
    try:
        fields = sim.load(args.file)
        print('fields:', ", ".join(fields))
        status = sim.status()
        logger.info(f"Playing {args.file} every {status['frequency']['interval_ms']:.1f} ms "
                    f"({status['throughput']} per broadcast)")
        sim.start()
        while not done.wait(0.5):
            pass
        print('sent', sim.scheduler.cursor, 'messages')
    except InitializationError as e:
        logger.error(f"Cannot load {args.file}: {e}")
        return 1
    except KeyboardInterrupt:
        print('interrupted at message', sim.scheduler.cursor)
    finally:
        sim.close()
    return 0


def main():
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    sys.exit(run(args))


if __name__ == '__main__':
    main()
