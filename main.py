#!/usr/bin/env python3
"""
CLI host for the Blueflood publisher.

Reads measurements from a JSON file and/or samples basic system metrics,
then publishes them to a Blueflood ingest endpoint.
"""
import argparse
import json
import logging
import sys
import time
from datetime import datetime
from typing import List, Optional, Sequence

import psutil
import pytz

from blueflood import config as bf_config  # Renamed to avoid clashing with the host config map
from blueflood.dispatcher import BatchDispatcher, DispatchOutcome
from blueflood.errors import PublisherError
from blueflood.measurement import Measurement, WireRecord, decode_measurements
from blueflood.publisher import BluefloodPublisher

# Setup logging
logger = logging.getLogger(__name__)


class DryRunDispatcher(BatchDispatcher):
    """Dispatcher that prints each batch instead of posting it."""

    def dispatch(self, batch: Sequence[WireRecord], server: str, timeout: int) -> DispatchOutcome:
        # One write per batch keeps concurrent batches from interleaving
        sys.stdout.write(json.dumps([record.to_json() for record in batch], indent=2) + '\n')
        sys.stdout.flush()
        logger.info("DRY RUN: Would send %d metrics to %s", len(batch), server)
        return DispatchOutcome.INGESTED


def setup_logging(log_level: str) -> None:
    """
    Setup logging with the specified log level.

    Args:
        log_level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def collect_system_metrics(prefix: str = 'host') -> List[Measurement]:
    """
    Sample CPU, memory and disk usage.

    Args:
        prefix (str): First namespace segment for every measurement

    Returns:
        list: One measurement per sampled value
    """
    timestamp = datetime.now(pytz.UTC)
    samples = {
        ('cpu', 'percent'): psutil.cpu_percent(interval=1),
        ('memory', 'percent'): psutil.virtual_memory().percent,
        ('disk', 'percent'): psutil.disk_usage('/').percent,
    }
    return [
        Measurement(namespace=(prefix,) + name, value=value, timestamp=timestamp)
        for name, value in samples.items()
    ]


def read_measurements(path: str) -> List[Measurement]:
    """
    Read a JSON array of measurements from a file, or stdin when path is '-'.

    Args:
        path (str): File to read

    Returns:
        list: The decoded measurements
    """
    if path == '-':
        return decode_measurements(sys.stdin.read())
    with open(path, 'r') as f:
        return decode_measurements(f.read())


def gather_measurements(args: argparse.Namespace) -> List[Measurement]:
    """
    Gather measurements from every source enabled on the command line.

    Args:
        args (argparse.Namespace): Command line arguments

    Returns:
        list: All measurements for this round
    """
    measurements: List[Measurement] = []
    if args.input:
        measurements.extend(read_measurements(args.input))
    if args.collect_system:
        measurements.extend(collect_system_metrics(args.prefix))
    return measurements


def build_config(args: argparse.Namespace) -> dict:
    """
    Build the host config map from command line arguments.

    Args:
        args (argparse.Namespace): Command line arguments

    Returns:
        dict: Config map keyed the way the publisher's config policy expects
    """
    return {
        'server': args.server_url or None,
        'rollupNum': args.rollup_num,
        'ttlInSeconds': args.ttl_in_seconds,
        'timeout': args.timeout,
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv (list, optional): Arguments to parse. Defaults to sys.argv[1:].

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Publish measurements to a Blueflood ingest endpoint')

    # Server configuration
    parser.add_argument('--server-url', default=bf_config.SERVER_URL,
                        help='Blueflood ingest URL (default: $BLUEFLOOD_SERVER_URL)')
    parser.add_argument('--rollup-num', type=int, default=bf_config.ROLLUP_NUM,
                        help='Maximum number of metrics per ingest request')
    parser.add_argument('--ttl-in-seconds', type=int, default=bf_config.TTL_IN_SECONDS,
                        help='Seconds before ingested data expires')
    parser.add_argument('--timeout', type=int, default=bf_config.REQUEST_TIMEOUT,
                        help='Ingest request timeout in seconds, 0 for none')
    parser.add_argument('--max-workers', type=int, default=bf_config.MAX_WORKERS,
                        help='Number of concurrent ingest requests')

    # Measurement sources
    parser.add_argument('--input', help="JSON file of measurements, '-' for stdin")
    parser.add_argument('--collect-system', action='store_true',
                        help='Sample CPU, memory and disk usage')
    parser.add_argument('--prefix', default='host',
                        help='Namespace prefix for sampled system metrics')

    # Run mode
    parser.add_argument('--interval', type=int, default=0,
                        help='Seconds between rounds, 0 to run once')
    parser.add_argument('--count', type=int, default=0,
                        help='Number of rounds when repeating, 0 for no limit')
    parser.add_argument('--dry-run', action='store_true',
                        help='Print ingest requests instead of sending them')
    parser.add_argument('--log-level', default=bf_config.LOG_LEVEL,
                        help='Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)')

    args = parser.parse_args(argv)
    if not args.input and not args.collect_system:
        parser.error('nothing to publish: pass --input and/or --collect-system')
    return args


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the publisher from the command line.

    Args:
        argv (list, optional): Arguments to parse. Defaults to sys.argv[1:].

    Returns:
        int: Process exit code
    """
    args = parse_args(argv)
    setup_logging(args.log_level)

    dispatcher_class = DryRunDispatcher if args.dry_run else BatchDispatcher
    publisher = BluefloodPublisher(dispatcher_class(max_workers=args.max_workers))
    host_config = build_config(args)

    rounds = 0
    try:
        while True:
            rounds += 1
            measurements = gather_measurements(args)
            logger.info("Round %d: publishing %d measurements", rounds, len(measurements))
            publisher.publish(measurements, host_config)

            if args.interval <= 0 or (args.count and rounds >= args.count):
                break
            time.sleep(args.interval)
    except PublisherError as e:
        logger.error("Publish failed: %s", e)
        return 1
    except (IOError, ValueError) as e:
        logger.error("Error reading measurements: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, waiting for in-flight ingest requests")
    finally:
        publisher.close(wait=True)

    return 0


if __name__ == "__main__":
    sys.exit(main())
