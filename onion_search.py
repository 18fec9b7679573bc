"""
Pattern validation and the generate-and-test loop.
"""
from collections import namedtuple

from onion_address import (
    BASE32_CHARS,
    SERVICE_ID_LEN_BASE32,
    derive_service_id,
    generate_key,
)

# Attempts between updates of a shared counter
DEFAULT_BATCH_SIZE = 100

SearchResult = namedtuple("SearchResult", ["private_key", "service_id", "attempts"])


class PatternError(ValueError):
    """Base class for patterns no service ID can start with."""
    kind = None


class PatternTooLong(PatternError):
    kind = "too_long"

    def __init__(self, pattern):
        self.pattern = pattern
        super().__init__(
            f"pattern is {len(pattern)} characters long, "
            f"service IDs have only {SERVICE_ID_LEN_BASE32}"
        )

    def __reduce__(self):
        return self.__class__, (self.pattern,)


class InvalidPatternCharacter(PatternError):
    kind = "invalid_character"

    def __init__(self, pattern, position):
        self.pattern = pattern
        self.position = position
        self.character = pattern[position]
        super().__init__(
            f"invalid character {self.character!r} at position {position}, "
            f"use only a-z and 2-7"
        )

    def __reduce__(self):
        return self.__class__, (self.pattern, self.position)


def validate_pattern(pattern):
    """Returns `pattern` unchanged if a service ID can start with it."""
    if len(pattern) > SERVICE_ID_LEN_BASE32:
        raise PatternTooLong(pattern)
    for i, c in enumerate(pattern):
        if c not in BASE32_CHARS:
            raise InvalidPatternCharacter(pattern, i)
    return pattern


def pattern_matches(pattern, service_id):
    return service_id[:len(pattern)] == pattern


def expected_attempts(pattern):
    """Average number of keys needed to hit `pattern`."""
    return len(BASE32_CHARS) ** len(pattern)


def try_once(pattern, generate=generate_key, derive=derive_service_id):
    """
    Generates a single key and tests it.

    Returns (private_key, service_id) on a match and None otherwise; the
    non-matching key is not kept anywhere.
    """
    private_key = generate()
    service_id = derive(private_key.public_key())
    if pattern_matches(pattern, service_id):
        return private_key, service_id
    return None


def _flush(counter, attempts):
    if counter is not None and attempts:
        with counter.get_lock():
            counter.value += attempts


def search(pattern, stop_event=None, counter=None, batch_size=DEFAULT_BATCH_SIZE,
           generate=generate_key, derive=derive_service_id):
    """
    Brute-force keys until one derives a service ID starting with `pattern`.

    `stop_event` is checked before every attempt; once it is set the search
    returns None. Attempts are added to `counter` (a multiprocessing.Value)
    every `batch_size` keys. Key generation and digest errors propagate.
    """
    validate_pattern(pattern)

    attempts = 0
    pending = 0
    try:
        while stop_event is None or not stop_event.is_set():
            found = try_once(pattern, generate, derive)
            attempts += 1
            pending += 1

            if found:
                private_key, service_id = found
                return SearchResult(private_key, service_id, attempts)

            if pending >= batch_size:
                _flush(counter, pending)
                pending = 0
        return None
    finally:
        _flush(counter, pending)
