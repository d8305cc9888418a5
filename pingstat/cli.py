# pingstat/cli.py
# Usage examples:
#   pingstat -l 127.0.0.1:9427 192.0.2.1 2001:db8::1
#   pingstat -c /etc/pingstat.toml --type raw --ttl 32
#   python3 -m pingstat.cli -l [::1]:9427 -n blue -i 0.5 -t 1 192.0.2.1

import argparse
import asyncio
import logging
import os
import sys

from pingstat.config import ConfigError, load_config_file, resolve, settings_from_args
from pingstat.core.pool import ClientCreationError
from pingstat.schemas import SOCK_TYPES
from pingstat.service import serve

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger("pingstat")


def build_argparser():
    ap = argparse.ArgumentParser(prog="pingstat",
                                 description="Continuous ICMP prober exposing reachability metrics")
    ap.add_argument("target", nargs="*", help="Target IPs")
    ap.add_argument("-l", "--listen", help="Listen address (e.g. 127.0.0.1:3000)")
    ap.add_argument("-c", "--config", help="Config path (TOML)")
    ap.add_argument("-I", "--interface", help="Default ping interface (interface name or IP to bind to)")
    ap.add_argument("-n", "--netns", help="Default network namespace name")
    ap.add_argument("-i", "--interval", type=float, help="Default ping interval (in seconds)")
    ap.add_argument("-t", "--timeout", type=float, help="Default ping timeout (in seconds)")
    ap.add_argument("--type", dest="sock_type", choices=SOCK_TYPES, help="Default ICMP socket type")
    ap.add_argument("--ttl", type=int, help="Default ICMP TTL")
    ap.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS,
                    default=os.environ.get("PINGSTAT_LOG_LEVEL", "INFO").upper(),
                    help="Logging level (default: $PINGSTAT_LOG_LEVEL or INFO)")
    return ap


def main(argv=None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT,
                        handlers=[logging.StreamHandler()])

    try:
        file_settings = load_config_file(args.config) if args.config else None
        listen, targets = resolve(settings_from_args(args), file_settings)
    except ConfigError as e:
        ap.error(str(e))

    if not targets:
        logger.warning("no targets configured, serving empty metrics")

    try:
        asyncio.run(serve(listen, targets))
    except ClientCreationError as e:
        logger.critical("%s", e)
        return 1
    except Exception:
        logger.critical("metrics server failed", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
