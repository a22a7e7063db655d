"""Remove null he/hm fields and null-id oid entries from MongoDB and Aerospike.

Usage:
    python cleaner.py                      # every enabled backend
    python cleaner.py --backend aerospike --chunk-size 200 --dry-run

Connection settings come from config/*.yaml and environment variables
(see config/settings.py). Exit codes: 0 every run reported, 1 a run was
aborted or timed out, 2 configuration error.
"""
import argparse
import logging
import os
import sys

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Clean null he/hm fields and null oid entries')
    parser.add_argument('--backend', choices=['all', 'mongo', 'aerospike'], default='all',
                        help='Backend(s) to clean (default: every enabled backend)')
    parser.add_argument('--chunk-size', type=int, default=None, help='Records per chunk (default: CHUNK_SIZE or 500)')
    parser.add_argument('--dry-run', action='store_true', help='Classify and count without writing')
    parser.add_argument('--deadline', type=float, default=None,
                        help='Overall deadline in seconds for the parallel runs')
    parser.add_argument('--no-prefilter', action='store_true',
                        help='Scan every MongoDB document instead of only null candidates')
    return parser.parse_args(argv)


def selected_backends(cfg, choice):
    if choice == 'all':
        return cfg.enabled_backends()
    return [choice]


def main(argv=None) -> int:
    args = parse_args(argv)

    from null_cleaner.exception.ConfigError import ConfigError
    try:
        from config.settings import Config
        cfg = Config.reload()
        backends = selected_backends(cfg, args.backend)
        cfg.validate_required(backends)
        if args.chunk_size is not None and args.chunk_size <= 0:
            raise ConfigError('--chunk-size must be a positive integer')
        if args.deadline is not None and args.deadline <= 0:
            raise ConfigError('--deadline must be positive')
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return EXIT_CONFIG_ERROR

    from null_cleaner.utils.log_setup import setup_logging
    from null_cleaner.services import cleaner_service

    setup_logging(cfg)
    logging.info('Starting %s with %s', cfg.APP_NAME, cfg.to_dict())

    chunk_size = args.chunk_size or cfg.CHUNK_SIZE
    dry_run = args.dry_run or cfg.DRY_RUN
    deadline = args.deadline if args.deadline is not None else cfg.RUN_DEADLINE_SECONDS

    adapters = []
    if 'aerospike' in backends:
        adapters.append(cleaner_service.build_aerospike_adapter(cfg, chunk_size))
    if 'mongo' in backends:
        adapters.append(cleaner_service.build_mongo_adapter(cfg, chunk_size,
                                                            prefilter=cfg.MONGO_PREFILTER and not args.no_prefilter))

    result = cleaner_service.run_backends(adapters, chunk_size, dry_run=dry_run, deadline_seconds=deadline)
    for label in sorted(result.reports):
        print('\n' + result.reports[label].render())
    for label, reason in sorted(result.failures.items()):
        print(f'\n{label} run aborted: {reason}', file=sys.stderr)

    code = EXIT_OK if result.ok else EXIT_RUN_FAILED
    if result.timed_out:
        # abandoned runs still hold pool threads that would keep the interpreter alive
        sys.stdout.flush()
        sys.stderr.flush()
        logging.shutdown()
        os._exit(code)
    return code


if __name__ == "__main__":
    sys.exit(main())
