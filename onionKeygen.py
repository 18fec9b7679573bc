#!/usr/bin/env python3
"""
Tor hidden service (.onion) vanity address generator.

Generates RSA keys until the derived service ID starts with the given
pattern, then writes the key to a hidden service directory named after the
pattern.

Usage:
    python onionKeygen.py abc             # find abc????????????.onion
    python onionKeygen.py abc -o keys/    # create the directory under keys/
    python onionKeygen.py                 # ask for the pattern
"""
import argparse
import ctypes
import multiprocessing
import os
import sys
import time

from cryptography.hazmat.primitives import serialization

from onion_address import DigestError, KeyGenerationError
from onion_export import export_private_key, output_directory
from onion_search import PatternError, expected_attempts, search, validate_pattern

# Attempts a worker counts locally before touching the shared counter
BATCH_SIZE = 50
# Seconds between progress line updates
REFRESH_INTERVAL = 0.4

# Set in the worker process by init_worker
_worker_counter = None
_worker_stop_event = None


def init_worker(counter, stop_event):
    """Attaches the shared counter and stop event to the worker process."""
    global _worker_counter, _worker_stop_event
    _worker_counter = counter
    _worker_stop_event = stop_event


def worker(pattern):
    """
    Runs the search inside the pool process.
    Returns the key as DER bytes since key objects can't be pickled.
    """
    result = search(
        pattern,
        stop_event=_worker_stop_event,
        counter=_worker_counter,
        batch_size=BATCH_SIZE
    )
    if result is None:
        return None

    raw_private_bytes = result.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    return raw_private_bytes, result.service_id, result.attempts


def run_search(pattern):
    """
    Searches in a background process while printing the key rate.
    Returns (private_key, service_id, attempts). Ctrl+C stops the worker and propagates.
    """
    stop_event = multiprocessing.Event()
    total_attempts = multiprocessing.Value(ctypes.c_ulonglong, 0)
    expected = expected_attempts(pattern)
    start_time = time.time()

    pool = multiprocessing.Pool(
        processes=1,
        initializer=init_worker,
        initargs=(total_attempts, stop_event)
    )
    try:
        async_result = pool.apply_async(worker, args=(pattern,))

        while not async_result.ready():
            elapsed = time.time() - start_time
            current_total = total_attempts.value
            k_s = current_total / elapsed if elapsed > 0 else 0

            sys.stdout.write(
                f"\rSpeed: {k_s:,.0f} keys/s | Checked: {current_total:,} | Expected: ~{expected:,} "
            )
            sys.stdout.flush()
            async_result.wait(REFRESH_INTERVAL)

        # Re-raises whatever the worker raised
        found = async_result.get()
    except KeyboardInterrupt:
        stop_event.set()
        pool.terminate()
        raise
    finally:
        pool.close()
        pool.join()

    raw_priv, service_id, attempts = found
    private_key = serialization.load_der_private_key(raw_priv, password=None)
    return private_key, service_id, attempts


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate a Tor hidden service key whose .onion address starts with PATTERN."
    )
    parser.add_argument(
        "pattern", nargs="?",
        help="prefix of the service ID (a-z, 2-7, at most 16 characters)"
    )
    parser.add_argument(
        "-o", "--output-dir", default=".",
        help="where to create the hidden service directory (default: current directory)"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    pattern = args.pattern
    if pattern is None:
        pattern = input("Enter the service ID prefix to search for: ").strip()

    try:
        validate_pattern(pattern)
    except PatternError as e:
        print(f"Invalid pattern: {e}", file=sys.stderr)
        return 2

    # Don't spend hours searching only to fail on mkdir
    if not os.path.isdir(args.output_dir):
        print(f"Error: output directory {args.output_dir} does not exist.", file=sys.stderr)
        return 1
    if pattern:
        target = output_directory(pattern, None, args.output_dir)
        if os.path.exists(target):
            print(f"Error: {target} already exists.", file=sys.stderr)
            return 1

    print("--- Tor Hidden Service Vanity Address Generator ---")
    print(f"    Pattern: {pattern or '(any)'}")
    print(f"    Expected attempts: ~{expected_attempts(pattern):,}")
    print("-" * 51)
    print("Searching... (Press Ctrl+C to abort)", flush=True)

    start_time = time.time()
    try:
        found = run_search(pattern)
    except KeyboardInterrupt:
        print("\n\nAborted by user.")
        return 130
    except (KeyGenerationError, DigestError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    private_key, service_id, attempts = found
    duration = time.time() - start_time
    directory = output_directory(pattern, service_id, args.output_dir)

    try:
        priv_file, host_file = export_private_key(private_key, service_id, directory)
    except OSError as e:
        print(f"\nError: could not save key to {directory}: {e}", file=sys.stderr)
        return 1

    print(f"\n\n  [SUCCESS] Found match after {attempts:,} keys in {duration:.2f} seconds.")
    print(f"  Address:  {service_id}.onion")
    print(f"  Saved to: {priv_file} and {host_file}")
    return 0


if __name__ == "__main__":
    multiprocessing.freeze_support()
    sys.exit(main())
